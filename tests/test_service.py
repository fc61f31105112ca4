"""
GeminiService against a stand-in client: request shapes, response
extraction and SDK error translation.
"""

from types import SimpleNamespace

import httpx
import pytest
from google.genai import errors as genai_errors
from google.genai import types

from brandstudio.errors import ClientRequestError, TransientServiceError
from brandstudio.schema import BrandStrategy
from brandstudio.service import (
    GeminiService,
    GeneratedImage,
    first_inline_image,
    grounding_chunks,
    translated_errors,
)


def api_error(cls, code, message):
    return cls(code, {"error": {"code": code, "message": message, "status": "X"}})


def image_response(data=b"\x89PNGlogo", mime_type="image/png"):
    return types.GenerateContentResponse(
        candidates=[
            types.Candidate(
                content=types.Content(
                    role="model",
                    parts=[
                        types.Part(text="Here is your logo."),
                        types.Part(inline_data=types.Blob(data=data, mime_type=mime_type)),
                    ],
                )
            )
        ]
    )


def text_response(text, chunks=None):
    metadata = types.GroundingMetadata(grounding_chunks=chunks) if chunks is not None else None
    return types.GenerateContentResponse(
        candidates=[
            types.Candidate(
                content=types.Content(role="model", parts=[types.Part(text=text)]),
                grounding_metadata=metadata,
            )
        ]
    )


class FakeModels:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    async def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


class FakeChat:
    def __init__(self, texts, error=None):
        self.texts = texts
        self.error = error
        self.sent = []

    async def send_message_stream(self, message):
        self.sent.append(message)

        async def chunks():
            for text in self.texts:
                yield SimpleNamespace(text=text)
            if self.error is not None:
                raise self.error

        return chunks()


class FakeChats:
    def __init__(self, chat):
        self.chat = chat
        self.created = []

    def create(self, **kwargs):
        self.created.append(kwargs)
        return self.chat


def make_service(models=None, chat=None):
    client = SimpleNamespace(
        aio=SimpleNamespace(models=models or FakeModels(), chats=FakeChats(chat or FakeChat([])))
    )
    return GeminiService(client=client), client


# ── Error translation ─────────────────────────────────────────────────────────

def test_client_error_keeps_status_and_message():
    original = api_error(genai_errors.ClientError, 400, "API key not valid")

    with pytest.raises(ClientRequestError) as info:
        with translated_errors():
            raise original

    assert info.value.status_code == 400
    assert "API key not valid" in info.value.message
    assert info.value.__cause__ is original


@pytest.mark.parametrize(
    "original, status",
    [
        (api_error(genai_errors.ServerError, 503, "overloaded"), 503),
        (api_error(genai_errors.ClientError, 429, "quota"), 429),
        (httpx.ConnectError("connection refused"), None),
        (httpx.ReadTimeout("timed out"), None),
    ],
)
def test_transient_failures(original, status):
    with pytest.raises(TransientServiceError) as info:
        with translated_errors():
            raise original

    assert info.value.status_code == status


def test_other_exceptions_pass_through():
    with pytest.raises(KeyError):
        with translated_errors():
            raise KeyError("x")


# ── Response extraction ───────────────────────────────────────────────────────

def test_first_inline_image():
    image = first_inline_image(image_response(b"\xff\xd8\xffjpg", "image/jpeg"))

    assert image == GeneratedImage(b"\xff\xd8\xffjpg", "image/jpeg")


def test_no_inline_image():
    assert first_inline_image(text_response("only words")) is None
    assert first_inline_image(types.GenerateContentResponse()) is None


def test_grounding_chunks():
    chunk = types.GroundingChunk(web=types.GroundingChunkWeb(uri="https://a.example", title="A"))

    assert grounding_chunks(text_response("x", [chunk])) == [chunk]
    assert grounding_chunks(text_response("x")) == []
    assert grounding_chunks(types.GenerateContentResponse()) == []


# ── Calls ─────────────────────────────────────────────────────────────────────

async def test_generate_structured_requests_json():
    models = FakeModels(text_response('{"brandName": "Verdant"}'))
    service, _ = make_service(models)

    text = await service.generate_structured("m", "prompt", BrandStrategy, thinking_budget=2048)

    assert text == '{"brandName": "Verdant"}'
    config = models.calls[0]["config"]
    assert config.response_mime_type == "application/json"
    assert config.thinking_config.thinking_budget == 2048


async def test_generate_image_sends_size_only_to_sized_models():
    models = FakeModels(image_response())
    service, _ = make_service(models)

    image = await service.generate_image("gemini-3-pro-image-preview", "a fox", "16:9", "2K")
    await service.generate_image("gemini-2.5-flash-image", "a fox", "16:9", "2K")

    assert image.data == b"\x89PNGlogo"
    sized, unsized = (call["config"].image_config for call in models.calls)
    assert (sized.aspect_ratio, sized.image_size) == ("16:9", "2K")
    assert (unsized.aspect_ratio, unsized.image_size) == ("16:9", None)


async def test_generate_image_translates_errors():
    models = FakeModels(error=api_error(genai_errors.ServerError, 500, "internal"))
    service, _ = make_service(models)

    with pytest.raises(TransientServiceError):
        await service.generate_image("gemini-2.5-flash-image", "a fox", "1:1")


async def test_edit_image_sends_image_then_instruction():
    models = FakeModels(image_response(b"edited"))
    service, _ = make_service(models)

    result = await service.edit_image("edit", GeneratedImage(b"source", "image/jpeg"), "Add fog")

    assert result.data == b"edited"
    image_part, text_part = models.calls[0]["contents"]
    assert image_part.inline_data.data == b"source"
    assert image_part.inline_data.mime_type == "image/jpeg"
    assert text_part.text == "Add fog"


async def test_grounded_search_enables_google_search():
    chunk = types.GroundingChunk(web=types.GroundingChunkWeb(uri="https://a.example"))
    models = FakeModels(text_response("Summary.", [chunk]))
    service, _ = make_service(models)

    answer = await service.grounded_search("research", "oat milk")

    assert answer.text == "Summary."
    assert answer.chunks == [chunk]
    assert models.calls[0]["config"].tools[0].google_search is not None


async def test_stream_chat_yields_fragments_with_history():
    chat = FakeChat(["Hel", "", "lo"])
    service, client = make_service(chat=chat)
    history = [SimpleNamespace(role="user", text="Hi"), SimpleNamespace(role="model", text="Hey")]

    fragments = [f async for f in service.stream_chat("chat", history, "Ideas?")]

    assert fragments == ["Hel", "lo"]
    assert chat.sent == ["Ideas?"]
    created = client.aio.chats.created[0]
    assert [(c.role, c.parts[0].text) for c in created["history"]] == [("user", "Hi"), ("model", "Hey")]


async def test_stream_chat_translates_mid_stream_errors():
    chat = FakeChat(["partial"], error=api_error(genai_errors.ServerError, 503, "unavailable"))
    service, _ = make_service(chat=chat)

    received = []
    with pytest.raises(TransientServiceError) as info:
        async for fragment in service.stream_chat("chat", [], "Hi"):
            received.append(fragment)

    assert received == ["partial"]
    assert info.value.status_code == 503
