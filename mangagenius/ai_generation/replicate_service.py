"""
Integration with Replicate for comic panel image generation and editing.
"""

from __future__ import annotations

import io
import os
from collections.abc import Iterable as IterableABC
from typing import Any, BinaryIO, Callable

import httpx
import replicate

from mangagenius.common import decode_image_payload

DEFAULT_MODEL = "google/nano-banana"


def _build_nano_banana_input(
    *,
    prompt: str,
    image_input: BinaryIO | None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "prompt": prompt,
        "output_format": "png",
    }
    if image_input is not None:
        payload["image_input"] = [image_input]
    return payload


def _build_flux_kontext_input(
    *,
    prompt: str,
    image_input: BinaryIO | None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "prompt": prompt,
        "output_format": "png",
        "safety_tolerance": 2,
        "aspect_ratio": "1:1" if image_input is None else "match_input_image",
    }
    if image_input is not None:
        payload["input_image"] = image_input
    return payload


_MODEL_INPUT_BUILDERS: dict[str, Callable[..., dict[str, Any]]] = {
    "google/nano-banana": _build_nano_banana_input,
    "black-forest-labs/flux-kontext-pro": _build_flux_kontext_input,
    "black-forest-labs/flux-kontext-max": _build_flux_kontext_input,
}


def _build_replicate_input_payload(
    *,
    model_identifier: str,
    prompt: str,
    image_input: BinaryIO | None,
) -> dict[str, Any]:
    normalized_identifier = model_identifier.strip().lower()
    builder = _MODEL_INPUT_BUILDERS.get(normalized_identifier)
    if builder is None and ":" in normalized_identifier:
        base_identifier = normalized_identifier.split(":", maxsplit=1)[0]
        builder = _MODEL_INPUT_BUILDERS.get(base_identifier)
    if builder is None:
        supported_models = ", ".join(sorted(set(_MODEL_INPUT_BUILDERS)))
        raise ValueError(
            "Model identifier "
            f"'{model_identifier}' is not configured with a default input payload. "
            f"Supported models: {supported_models}."
        )

    return builder(prompt=prompt, image_input=image_input)


class ReplicateImageGenerator:
    """
    Convenience wrapper around the Replicate client for comic panel images.

    Parameters
    ----------
    api_token:
        Replicate API token. Falls back to ``REPLICATE_API_TOKEN`` environment variable.
    model_identifier:
        Model used to draw panels, in ``owner/model`` or ``owner/model:version`` form.
        Falls back to ``REPLICATE_MODEL`` and then to ``google/nano-banana``.
    edit_model_identifier:
        Model used to edit finished panels. Falls back to ``REPLICATE_EDIT_MODEL`` and
        then to the generation model.
    client:
        Optional pre-configured :class:`replicate.Client`. Mainly useful for testing.
    download_timeout:
        Timeout in seconds when a model answers with an image URL instead of a file.
    """

    def __init__(
        self,
        *,
        api_token: str | None = None,
        model_identifier: str | None = None,
        edit_model_identifier: str | None = None,
        client: replicate.Client | None = None,
        download_timeout: float = 60.0,
    ) -> None:
        self._api_token = api_token or os.getenv("REPLICATE_API_TOKEN")
        if not self._api_token and not client:
            raise ValueError(
                "Replicate API token is required. Set REPLICATE_API_TOKEN or pass api_token."
            )

        self._model_identifier = (
            model_identifier or os.getenv("REPLICATE_MODEL") or DEFAULT_MODEL
        )
        self._edit_model_identifier = (
            edit_model_identifier
            or os.getenv("REPLICATE_EDIT_MODEL")
            or self._model_identifier
        )
        self._client = client or replicate.Client(api_token=self._api_token)
        self._download_timeout = download_timeout

    @property
    def model_identifier(self) -> str:
        """Return the model identifier used for panel generation."""
        return self._model_identifier

    @property
    def edit_model_identifier(self) -> str:
        return self._edit_model_identifier

    async def generate_image(
        self,
        visual_prompt: str,
        reference_image: bytes | None = None,
        **model_kwargs: Any,
    ) -> bytes:
        """
        Draw one panel from its visual description.

        Parameters
        ----------
        visual_prompt:
            Scene description produced by the script writer.
        reference_image:
            Optional character/style reference, as raw image bytes or a data URL.
        **model_kwargs:
            Additional keyword arguments forwarded directly to the Replicate model.

        Returns
        -------
        bytes
            The rendered image.
        """
        image_input = _prepare_image_input(reference_image)
        replicate_input = _build_replicate_input_payload(
            model_identifier=self._model_identifier,
            prompt=visual_prompt,
            image_input=image_input,
        )
        replicate_input.update(model_kwargs)

        output = await self._client.async_run(self._model_identifier, input=replicate_input)
        image_data = await self._read_first_image(output)
        if not image_data:
            raise RuntimeError("No image data returned in response")
        return image_data

    async def edit_image(
        self,
        source_image: bytes,
        instruction: str,
        **model_kwargs: Any,
    ) -> bytes:
        """
        Apply a free-text edit instruction to an existing panel image.
        """
        image_input = _prepare_image_input(source_image)
        if image_input is None:
            raise ValueError("An existing image is required for editing.")

        replicate_input = _build_replicate_input_payload(
            model_identifier=self._edit_model_identifier,
            prompt=instruction,
            image_input=image_input,
        )
        replicate_input.update(model_kwargs)

        output = await self._client.async_run(
            self._edit_model_identifier,
            input=replicate_input,
        )
        image_data = await self._read_first_image(output)
        if not image_data:
            raise RuntimeError("No edited image data returned")
        return image_data

    async def _read_first_image(self, output: Any) -> bytes | None:
        for item in _flatten_outputs(output):
            data = await self._read_image_output(item)
            if data:
                return data
        return None

    async def _read_image_output(self, item: Any) -> bytes | None:
        if isinstance(item, (bytes, bytearray)):
            return bytes(item)

        if isinstance(item, str):
            if item.startswith("data:"):
                return decode_image_payload(item)
            if item.lower().startswith(("http://", "https://")):
                return await self._download(item)
            return None

        aread = getattr(item, "aread", None)
        if aread is not None:
            return await aread()

        read = getattr(item, "read", None)
        if read is not None:
            return read()

        url = getattr(item, "url", None)
        if isinstance(url, str):
            return await self._read_image_output(url)
        return None

    async def _download(self, url: str) -> bytes:
        async with httpx.AsyncClient(timeout=self._download_timeout) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.content


def _prepare_image_input(image: bytes | str | None) -> BinaryIO | None:
    """
    Wrap raw image bytes in an in-memory file so Replicate uploads it.
    """
    if image is None:
        return None
    data = decode_image_payload(image)
    if not data:
        return None
    return io.BytesIO(data)


def _flatten_outputs(raw: Any) -> list[Any]:
    """
    Normalize Replicate outputs (single file, URL, or nested iterables) into a flat list.
    """
    if raw is None:
        return []

    if isinstance(raw, (str, bytes, bytearray)):
        return [raw]

    if hasattr(raw, "aread") or hasattr(raw, "read"):
        return [raw]

    if isinstance(raw, IterableABC):
        flattened: list[Any] = []
        for item in raw:
            flattened.extend(_flatten_outputs(item))
        return flattened

    return [raw]
