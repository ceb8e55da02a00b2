"""Pytest fixtures for genstudio tests."""

import base64

import pytest

from genstudio.auth.signer import TokenSigner

# 1x1 transparent PNG
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


@pytest.fixture
def png_bytes() -> bytes:
    """Smallest valid PNG payload."""
    return PNG_BYTES


@pytest.fixture
def png_data_url() -> str:
    """The PNG as a data URL, as the browser uploads reference images."""
    return f"data:image/png;base64,{base64.b64encode(PNG_BYTES).decode()}"


@pytest.fixture
def signer() -> TokenSigner:
    """Signer with throwaway credentials."""
    return TokenSigner(access_key="test-access-key", secret_key="test-secret-key")


@pytest.fixture
def kling_task_payload() -> dict:
    """A finished Kling task record."""
    return {
        "task_id": "task-fox",
        "task_status": "succeed",
        "task_status_msg": "",
        "created_at": 1722769557708,
        "updated_at": 1722769587708,
        "task_result": {
            "videos": [
                {
                    "id": "video-1",
                    "url": "https://v15-kling.klingai.com/fox.mp4",
                    "duration": "5",
                }
            ]
        },
    }
