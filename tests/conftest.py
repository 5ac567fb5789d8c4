"""Shared test fixtures."""

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from config.settings import Settings
from src.main import create_app

CRON_SECRET = "test-cron-secret"


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_pem(rsa_key: rsa.RSAPrivateKey) -> str:
    return rsa_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        CRON_SECRET=CRON_SECRET,
        EXCHANGE_API_KEY_ID="key-id",
        EXCHANGE_PRIVATE_KEY="",
        SUBMIT_GROUP_DELAY_SECONDS=0.0,
    )


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    return create_app(settings)


@pytest.fixture
async def client(app: FastAPI) -> AsyncClient:
    """Async HTTP client for testing FastAPI endpoints (lifespan not run)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
