"""Provider adapters: the scripted mock and the google-genai wrapper."""

from types import SimpleNamespace

import pytest

from gemini_guard.adapters import GenerationAdapter, ImageGenerationAdapter
from gemini_guard.adapters.base import BlockedContentError
from gemini_guard.adapters.gemini import GeminiAdapter
from gemini_guard.adapters.mock import MockAdapter
from gemini_guard.core.types import GenerationRequest, ImageResult
from gemini_guard.schemas import GEO_LOCATION

pytestmark = pytest.mark.unit


def request(schema=None):
    return GenerationRequest(
        instructions="Eres un geografo.",
        input={"entry": {"title": "El Mohan"}},
        schema=schema,
        temperature=0.2,
        max_output_tokens=800,
    )


class TestMockAdapter:
    def test_satisfies_both_protocols(self):
        adapter = MockAdapter()

        assert isinstance(adapter, GenerationAdapter)
        assert isinstance(adapter, ImageGenerationAdapter)

    def test_scripted_responses_are_consumed_in_order(self):
        adapter = MockAdapter({"m": ["uno", "dos"]})

        assert adapter.generate_text("m", request()) == "uno"
        assert adapter.generate_text("m", request()) == "dos"
        assert adapter.generate_text("m", request()).startswith('{"model": "m"')

    def test_scripted_exceptions_are_raised(self):
        adapter = MockAdapter({"m": RuntimeError("boom")})

        with pytest.raises(RuntimeError, match="boom"):
            adapter.generate_text("m", request())

    def test_default_text(self):
        adapter = MockAdapter(default_text="{}")

        assert adapter.generate_text("any", request()) == "{}"

    @pytest.mark.asyncio
    async def test_async_text_shares_the_script(self):
        adapter = MockAdapter({"m": "hola"})

        assert await adapter.agenerate_text("m", request()) == "hola"
        assert len(adapter.text_calls) == 1

    def test_images(self):
        scripted = ImageResult(url="https://example.invalid/a.png")
        adapter = MockAdapter(image_responses=[scripted])

        assert adapter.generate_image("img", "p1") is scripted
        fallback = adapter.generate_image("img", "p2")
        assert fallback.data == b"mock-image"
        assert fallback.model_used == "img"
        assert adapter.image_calls == [("img", "p1"), ("img", "p2")]


class FakeModels:
    def __init__(self, response=None, images=None):
        self.response = response
        self.images = images
        self.calls = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        return self.response

    def generate_images(self, **kwargs):
        self.calls.append(kwargs)
        return self.images


class FakeAsyncModels(FakeModels):
    async def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        return self.response


def fake_client(response=None, images=None):
    return SimpleNamespace(
        models=FakeModels(response, images),
        aio=SimpleNamespace(models=FakeAsyncModels(response, images)),
    )


def text_response(text, block_reason=None):
    feedback = SimpleNamespace(block_reason=block_reason) if block_reason else None
    return SimpleNamespace(text=text, prompt_feedback=feedback)


class TestGeminiAdapter:
    def test_generate_text_builds_a_json_request(self):
        client = fake_client(text_response('{"latitude": 1}'))
        adapter = GeminiAdapter(client=client)

        text = adapter.generate_text("gemini-2.5-pro", request(GEO_LOCATION))

        assert text == '{"latitude": 1}'
        call = client.models.calls[0]
        assert call["model"] == "gemini-2.5-pro"
        assert call["contents"] == '{"entry": {"title": "El Mohan"}}'
        config = call["config"]
        assert config.response_mime_type == "application/json"
        assert config.system_instruction == "Eres un geografo."
        assert config.temperature == 0.2
        assert config.max_output_tokens == 800

    def test_plain_text_request(self):
        client = fake_client(text_response("texto"))

        GeminiAdapter(client=client).generate_text("m", request())

        assert client.models.calls[0]["config"].response_mime_type == "text/plain"

    def test_missing_text_is_empty(self):
        client = fake_client(text_response(None))

        assert GeminiAdapter(client=client).generate_text("m", request()) == ""

    def test_blocked_prompt_raises(self):
        reason = SimpleNamespace(name="PROHIBITED_CONTENT")
        client = fake_client(text_response(None, block_reason=reason))

        with pytest.raises(BlockedContentError) as exc_info:
            GeminiAdapter(client=client).generate_text("m", request())

        assert exc_info.value.block_reason == "PROHIBITED_CONTENT"

    @pytest.mark.asyncio
    async def test_async_generate_text(self):
        client = fake_client(text_response("async"))

        text = await GeminiAdapter(client=client).agenerate_text("m", request())

        assert text == "async"
        assert client.aio.models.calls[0]["model"] == "m"

    def test_generate_image(self):
        image = SimpleNamespace(image_bytes=b"png", gcs_uri=None, mime_type=None)
        images = SimpleNamespace(
            generated_images=[SimpleNamespace(image=image, rai_filtered_reason=None)]
        )
        client = fake_client(images=images)

        result = GeminiAdapter(client=client).generate_image("imagen", "Un jaguar")

        assert result.data == b"png"
        assert result.mime_type == "image/png"
        assert result.model_used == "imagen"
        assert client.models.calls[0]["config"].aspect_ratio == "9:16"

    def test_filtered_image_raises_blocked_content(self):
        filtered = SimpleNamespace(image=None, rai_filtered_reason="violence")
        client = fake_client(images=SimpleNamespace(generated_images=[filtered]))

        with pytest.raises(BlockedContentError, match="violence") as exc_info:
            GeminiAdapter(client=client).generate_image("imagen", "Prompt")

        assert exc_info.value.block_reason == "IMAGE_SAFETY"

    def test_no_images_raises_blocked_content(self):
        client = fake_client(images=SimpleNamespace(generated_images=None))

        with pytest.raises(BlockedContentError, match="no image returned"):
            GeminiAdapter(client=client).generate_image("imagen", "Prompt")
