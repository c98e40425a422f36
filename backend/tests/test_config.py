import importlib.util
import warnings
from decimal import Decimal

import pytest
from pydantic import ValidationError

from eventasap.core import config
from eventasap.core.config import Settings


def test_cors_allow_all_overrides_origins():
    s = Settings(_env_file=None, CORS_ALLOW_ALL=True, CORS_ORIGINS=["https://eventasap.example"])
    assert s.CORS_ORIGINS == ["*"]


def test_cors_origins_accept_csv_and_json():
    assert Settings(_env_file=None, CORS_ORIGINS="https://a.test, https://b.test").CORS_ORIGINS == [
        "https://a.test",
        "https://b.test",
    ]
    assert Settings(_env_file=None, CORS_ORIGINS='["https://a.test"]').CORS_ORIGINS == ["https://a.test"]


def test_commission_rate_must_be_a_fraction():
    assert Settings(_env_file=None, PLATFORM_COMMISSION_RATE="0.25").PLATFORM_COMMISSION_RATE == Decimal("0.25")
    with pytest.raises(ValidationError):
        Settings(_env_file=None, PLATFORM_COMMISSION_RATE="1.5")


def test_settings_validators_raise_no_pydantic_deprecations():
    spec = importlib.util.spec_from_file_location("eventasap_config_check", config.__file__)
    module = importlib.util.module_from_spec(spec)
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        spec.loader.exec_module(module)
    assert [
        str(w.message) for w in caught if w.category.__module__.startswith("pydantic")
    ] == []
