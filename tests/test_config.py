from __future__ import annotations

import pytest

from voyager.config import load_config_from_env

BASE_ENV = {
    "GITHUB_TOKEN": "t",
    "GITHUB_REPOSITORY": "octo/app",
    "GITHUB_EVENT_PATH": "/tmp/event.json",
    "LLM_BASE_URL": "https://llm.example.com",
    "LLM_API_KEY": "k",
    "LLM_MODEL": "m",
}


def test_load_config_requires_everything() -> None:
    with pytest.raises(ValueError):
        load_config_from_env(environ={})


@pytest.mark.parametrize("key", sorted(BASE_ENV))
def test_load_config_rejects_missing_key(key: str) -> None:
    environ = {k: v for k, v in BASE_ENV.items() if k != key}
    with pytest.raises(ValueError, match=key):
        load_config_from_env(environ=environ)


def test_load_config_rejects_empty_value() -> None:
    with pytest.raises(ValueError):
        load_config_from_env(environ={**BASE_ENV, "LLM_API_KEY": ""})


def test_load_config_rejects_malformed_repository() -> None:
    with pytest.raises(ValueError):
        load_config_from_env(environ={**BASE_ENV, "GITHUB_REPOSITORY": "just-a-name"})


def test_load_config_rejects_invalid_url() -> None:
    with pytest.raises(ValueError):
        load_config_from_env(environ={**BASE_ENV, "LLM_BASE_URL": "not a url"})


def test_load_config_defaults() -> None:
    cfg = load_config_from_env(environ=BASE_ENV)
    assert cfg.github.owner == "octo"
    assert cfg.github.repo == "app"
    assert str(cfg.github.api_base_url).rstrip("/") == "https://api.github.com"
    assert cfg.trigger_label == "voyager"
    assert cfg.branch_prefix == "voyager/issue"
    assert cfg.policy.allowed_roots == ("src/",)
    assert ".css" in cfg.policy.sensitive_extensions
    assert cfg.policy.import_aliases == {"@/": "src/"}
    assert cfg.log_level == "INFO"


def test_load_config_policy_overrides() -> None:
    environ = {
        **BASE_ENV,
        "GITHUB_API_URL": "https://ghe.example.com/api/v3",
        "VOYAGER_ALLOWED_ROOTS": "src/, app/",
        "VOYAGER_SENSITIVE_EXTENSIONS": "css,.lock",
        "VOYAGER_IMPORT_ALIASES": "",
        "LOG_LEVEL": "debug",
    }
    cfg = load_config_from_env(environ=environ)
    assert str(cfg.github.api_base_url).startswith("https://ghe.example.com/api/v3")
    assert cfg.policy.allowed_roots == ("src/", "app/")
    assert cfg.policy.sensitive_extensions == (".css", ".lock")
    assert cfg.policy.import_aliases == {}
    assert cfg.log_level == "DEBUG"


def test_load_config_import_aliases() -> None:
    cfg = load_config_from_env(environ={**BASE_ENV, "VOYAGER_IMPORT_ALIASES": "@/=src/, ~/=src/lib/"})
    assert cfg.policy.import_aliases == {"@/": "src/", "~/": "src/lib/"}


def test_load_config_rejects_malformed_import_alias() -> None:
    with pytest.raises(ValueError, match="VOYAGER_IMPORT_ALIASES"):
        load_config_from_env(environ={**BASE_ENV, "VOYAGER_IMPORT_ALIASES": "@/"})


def test_load_config_rejects_unknown_log_level() -> None:
    with pytest.raises(ValueError, match="LOG_LEVEL"):
        load_config_from_env(environ={**BASE_ENV, "LOG_LEVEL": "verbose"})


def test_load_config_accepts_warning_log_level() -> None:
    cfg = load_config_from_env(environ={**BASE_ENV, "LOG_LEVEL": " warning "})
    assert cfg.log_level == "WARNING"
