"""Settings validation."""

import pydantic
import pytest

from oportal.config import Settings


def test_refresh_token_limit_must_be_positive():
    with pytest.raises(pydantic.ValidationError):
        Settings(refresh_token_limit=0)

    assert Settings(refresh_token_limit=1).refresh_token_limit == 1


def test_production_requires_real_secret():
    with pytest.raises(pydantic.ValidationError):
        Settings(environment="production")

    assert Settings(environment="production", jwt_secret="s3cr3t").is_production
