"""Tests for agentic_did.config.VerifierConfig."""
from __future__ import annotations

import datetime

import pytest

from agentic_did.config import DEFAULT_ISSUER, VerifierConfig, utc_now


class TestDefaults:
    def test_defaults(self) -> None:
        config = VerifierConfig()
        assert config.issuer == DEFAULT_ISSUER == "https://agenticdid.io"
        assert config.token_ttl_seconds == 120
        assert config.nonce_ttl_seconds == 120
        assert config.oracle_timeout_seconds == 2.0
        assert config.strict_scopes is False

    def test_ttl_properties_are_timedeltas(self) -> None:
        config = VerifierConfig(token_ttl_seconds=30, nonce_ttl_seconds=45)
        assert config.token_ttl == datetime.timedelta(seconds=30)
        assert config.nonce_ttl == datetime.timedelta(seconds=45)

    def test_utc_now_is_timezone_aware(self) -> None:
        assert utc_now().tzinfo is not None

    def test_config_is_frozen(self) -> None:
        config = VerifierConfig()
        with pytest.raises(AttributeError):
            config.issuer = "x"  # type: ignore[misc]


class TestValidation:
    @pytest.mark.parametrize("ttl", [0, 601, -5])
    def test_token_ttl_out_of_range(self, ttl: int) -> None:
        with pytest.raises(ValueError, match="token_ttl_seconds"):
            VerifierConfig(token_ttl_seconds=ttl)

    def test_token_ttl_upper_bound_accepted(self) -> None:
        assert VerifierConfig(token_ttl_seconds=600).token_ttl_seconds == 600

    @pytest.mark.parametrize("ttl", [0, 301])
    def test_nonce_ttl_out_of_range(self, ttl: int) -> None:
        with pytest.raises(ValueError, match="nonce_ttl_seconds"):
            VerifierConfig(nonce_ttl_seconds=ttl)

    def test_empty_issuer_rejected(self) -> None:
        with pytest.raises(ValueError):
            VerifierConfig(issuer="")

    def test_non_positive_oracle_timeout_rejected(self) -> None:
        with pytest.raises(ValueError):
            VerifierConfig(oracle_timeout_seconds=0)

    def test_negative_rate_limit_rejected(self) -> None:
        with pytest.raises(ValueError):
            VerifierConfig(rate_limit_per_minute=-1)


class TestFromEnv:
    def test_empty_environment_gives_defaults(self) -> None:
        assert VerifierConfig.from_env({}) == VerifierConfig()

    def test_reads_every_variable(self) -> None:
        config = VerifierConfig.from_env(
            {
                "ISSUER": "https://verifier.example",
                "TOKEN_TTL_SECONDS": "60",
                "NONCE_TTL_SECONDS": "30",
                "ORACLE_TIMEOUT_SECONDS": "0.5",
                "STRICT_SCOPES": "true",
                "RATE_LIMIT_PER_MINUTE": "0",
            }
        )
        assert config.issuer == "https://verifier.example"
        assert config.token_ttl_seconds == 60
        assert config.nonce_ttl_seconds == 30
        assert config.oracle_timeout_seconds == 0.5
        assert config.strict_scopes is True
        assert config.rate_limit_per_minute == 0

    @pytest.mark.parametrize("raw", ["0", "false", "no", "off", ""])
    def test_strict_scopes_false_values(self, raw: str) -> None:
        assert VerifierConfig.from_env({"STRICT_SCOPES": raw}).strict_scopes is False

    def test_unparsable_value_raises(self) -> None:
        with pytest.raises(ValueError):
            VerifierConfig.from_env({"TOKEN_TTL_SECONDS": "soon"})

    def test_out_of_range_value_raises(self) -> None:
        with pytest.raises(ValueError):
            VerifierConfig.from_env({"TOKEN_TTL_SECONDS": "3600"})
