"""Tests for RuntimeConfig and environment loading."""

from __future__ import annotations

import logging

import pytest

from cotask import ConfigError, FifoPolicy, RandomPolicy, Runtime, RuntimeConfig, SeededPolicy


class TestRuntimeConfig:
    def test_defaults(self):
        config = RuntimeConfig()
        assert config.policy == "random"
        assert config.seed is None
        assert not config.debug
        assert not config.trace
        assert type(config.make_policy()) is RandomPolicy

    def test_invalid_policy(self):
        with pytest.raises(ConfigError, match="policy must be one of"):
            RuntimeConfig(policy="round-robin")

    def test_seed_must_be_int(self):
        with pytest.raises(ConfigError, match="seed must be int"):
            RuntimeConfig(seed="7")
        with pytest.raises(ConfigError):
            RuntimeConfig(seed=True)

    def test_seeded_requires_seed(self):
        with pytest.raises(ConfigError, match="requires a seed"):
            RuntimeConfig(policy="seeded")

    def test_make_policy(self):
        assert isinstance(RuntimeConfig(policy="fifo").make_policy(), FifoPolicy)
        seeded = RuntimeConfig(policy="seeded", seed=3).make_policy()
        assert isinstance(seeded, SeededPolicy)
        assert seeded.seed == 3
        assert isinstance(RuntimeConfig(seed=4).make_policy(), SeededPolicy)

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            RuntimeConfig(policy="nope")


class TestFromEnv:
    def test_empty_environment(self):
        assert RuntimeConfig.from_env({}) == RuntimeConfig()

    def test_reads_all_variables(self):
        config = RuntimeConfig.from_env(
            {
                "COTASK_POLICY": " Seeded ",
                "COTASK_SEED": "42",
                "COTASK_DEBUG": "yes",
                "COTASK_TRACE": "1",
            }
        )
        assert config == RuntimeConfig(policy="seeded", seed=42, debug=True, trace=True)

    def test_falsy_flags(self):
        config = RuntimeConfig.from_env({"COTASK_DEBUG": "0", "COTASK_TRACE": "off"})
        assert not config.debug
        assert not config.trace

    def test_invalid_seed(self):
        with pytest.raises(ConfigError, match="COTASK_SEED"):
            RuntimeConfig.from_env({"COTASK_SEED": "abc"})

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("COTASK_POLICY", "fifo")
        monkeypatch.delenv("COTASK_SEED", raising=False)
        assert RuntimeConfig.from_env().policy == "fifo"

    def test_runtime_from_env(self, host):
        runtime = Runtime.from_env(host=host, environ={"COTASK_POLICY": "fifo", "COTASK_TRACE": "true"})

        assert runtime.host is host
        assert isinstance(runtime.scheduler.policy, FifoPolicy)
        assert runtime.scheduler.trace == []

    def test_debug_sets_package_logger_level(self):
        package_logger = logging.getLogger("cotask")
        previous = package_logger.level
        try:
            Runtime(config=RuntimeConfig(debug=True))
            assert package_logger.level == logging.DEBUG
        finally:
            package_logger.setLevel(previous)
