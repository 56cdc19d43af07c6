from types import SimpleNamespace

import pytest

from novella.configuration import build_translator_config, validate_translator_settings
from novella.errors import TranslationProviderConfigurationError
from novella.structures import BaiduConfig, EchoConfig, SakuraConfig


def settings(**overrides):
    values = {
        "NOVELLA_TRANSLATOR": "baidu",
        "SAKURA_ENDPOINT": None,
        "SAKURA_SEG_LENGTH": None,
        "SAKURA_PREV_SEG_LENGTH": None,
        "NOVELLA_PROVIDER_DEBUG": False,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def test_sakura_requires_endpoint():
    with pytest.raises(TranslationProviderConfigurationError) as excinfo:
        validate_translator_settings(settings(NOVELLA_TRANSLATOR="sakura"))

    assert "SAKURA_ENDPOINT" in str(excinfo.value)


def test_lengths_are_validated():
    with pytest.raises(TranslationProviderConfigurationError) as excinfo:
        validate_translator_settings(
            settings(SAKURA_SEG_LENGTH=0, SAKURA_PREV_SEG_LENGTH=-1)
        )

    message = str(excinfo.value)
    assert "SAKURA_SEG_LENGTH" in message
    assert "SAKURA_PREV_SEG_LENGTH" in message


def test_valid_settings_pass():
    validate_translator_settings(
        settings(NOVELLA_TRANSLATOR="sakura", SAKURA_ENDPOINT="http://localhost:8080")
    )


def test_build_config_from_settings():
    assert build_translator_config(settings()) == BaiduConfig()
    assert build_translator_config(settings(), translator="echo") == EchoConfig()


def test_command_line_overrides_settings():
    config = build_translator_config(
        settings(
            NOVELLA_TRANSLATOR="sakura",
            SAKURA_ENDPOINT="http://config:8080",
            SAKURA_SEG_LENGTH=300,
        ),
        endpoint="http://cli:8080",
        prev_seg_length=0,
    )

    assert config == SakuraConfig(endpoint="http://cli:8080", seg_length=300, prev_seg_length=0)


def test_sakura_without_any_endpoint_fails():
    with pytest.raises(TranslationProviderConfigurationError):
        build_translator_config(settings(), translator="sakura")
