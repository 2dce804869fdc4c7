"""Tests for the background-removal and remote-edit adapters.

Both third-party backends are replaced with in-memory fakes; nothing here
touches the network or downloads models.
"""

from __future__ import annotations

import base64
import sys
import types
from unittest.mock import MagicMock, patch

import numpy as np
import pytest
from PIL import Image

from pixel_sprite.collaborators import DEFAULT_EDIT_PROMPT, edit_image, remove_background
from pixel_sprite.errors import CollaboratorFailure


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _fake_rembg(remove) -> types.ModuleType:
    module = types.ModuleType("rembg")
    module.remove = remove
    return module


class _FakeOpenAIError(Exception):
    pass


def _fake_openai(edit_result=None, edit_error=None):
    client = MagicMock()
    if edit_error is not None:
        client.images.edit.side_effect = edit_error
    else:
        client.images.edit.return_value = edit_result
    module = types.ModuleType("openai")
    module.OpenAI = MagicMock(return_value=client)
    module.OpenAIError = _FakeOpenAIError
    return module, client


def _sample(width: int = 6, height: int = 4) -> np.ndarray:
    img = np.zeros((height, width, 4), dtype=np.uint8)
    img[:, :] = (120, 60, 30, 255)
    return img


# ---------------------------------------------------------------------------
# Tests: background removal
# ---------------------------------------------------------------------------


class TestRemoveBackground:
    def test_returns_rgba_with_mask(self):
        def remove(pil):
            arr = np.array(pil)
            arr[:, :2, 3] = 0
            return Image.fromarray(arr)

        with patch.dict(sys.modules, {"rembg": _fake_rembg(remove)}):
            out = remove_background(_sample())
        assert out.shape == (4, 6, 4)
        assert np.all(out[:, :2, 3] == 0)
        assert np.all(out[:, 2:, 3] == 255)

    def test_missing_library(self):
        with patch.dict(sys.modules, {"rembg": None}):
            with pytest.raises(CollaboratorFailure, match="rembg"):
                remove_background(_sample())

    def test_backend_error_is_wrapped(self):
        def remove(pil):
            raise RuntimeError("onnx session crashed")

        with patch.dict(sys.modules, {"rembg": _fake_rembg(remove)}):
            with pytest.raises(CollaboratorFailure, match="onnx session crashed"):
                remove_background(_sample())

    def test_size_mismatch(self):
        with patch.dict(sys.modules, {"rembg": _fake_rembg(lambda pil: pil.resize((3, 3)))}):
            with pytest.raises(CollaboratorFailure, match="expected 6x4"):
                remove_background(_sample())


# ---------------------------------------------------------------------------
# Tests: remote image edit
# ---------------------------------------------------------------------------


class TestEditImage:
    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(CollaboratorFailure, match="OPENAI_API_KEY"):
            edit_image(b"png-bytes")

    def test_missing_image(self):
        with pytest.raises(CollaboratorFailure, match="Missing image"):
            edit_image(b"", api_key="sk-test")

    def test_success_uses_default_prompt(self):
        payload = b"\x89PNG fake"
        result = types.SimpleNamespace(
            data=[types.SimpleNamespace(b64_json=base64.b64encode(payload).decode("ascii"))]
        )
        module, client = _fake_openai(edit_result=result)

        with patch.dict(sys.modules, {"openai": module}):
            out = edit_image(b"png-bytes", api_key="sk-test", filename="cat.png")

        assert out == payload
        module.OpenAI.assert_called_once_with(api_key="sk-test")
        kwargs = client.images.edit.call_args.kwargs
        assert kwargs["model"] == "gpt-image-1"
        assert kwargs["size"] == "1024x1024"
        assert kwargs["prompt"] == DEFAULT_EDIT_PROMPT
        assert kwargs["image"] == ("cat.png", b"png-bytes", "image/png")

    def test_env_key_and_custom_prompt(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        result = types.SimpleNamespace(
            data=[types.SimpleNamespace(b64_json=base64.b64encode(b"x").decode("ascii"))]
        )
        module, client = _fake_openai(edit_result=result)

        with patch.dict(sys.modules, {"openai": module}):
            edit_image(b"png-bytes", prompt="make it a knight")

        module.OpenAI.assert_called_once_with(api_key="sk-env")
        assert client.images.edit.call_args.kwargs["prompt"] == "make it a knight"

    def test_no_image_returned(self):
        module, _ = _fake_openai(edit_result=types.SimpleNamespace(data=[]))
        with patch.dict(sys.modules, {"openai": module}):
            with pytest.raises(CollaboratorFailure, match="No image returned from provider"):
                edit_image(b"png-bytes", api_key="sk-test")

    def test_provider_error_keeps_message(self):
        module, _ = _fake_openai(edit_error=_FakeOpenAIError("rate limited"))
        with patch.dict(sys.modules, {"openai": module}):
            with pytest.raises(CollaboratorFailure, match="rate limited"):
                edit_image(b"png-bytes", api_key="sk-test")
