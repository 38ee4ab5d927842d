"""
Typed message metadata.

Message.extra_data is stored as a JSON document, but every write goes
through one of these variants, selected by the message type. Fields that
belong to no variant are kept as pydantic extras.
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from rai.models.db import MessageType


class GenerationInfo(BaseModel):
    """Fields shared by every variant, filled in for AI turns."""

    model_config = ConfigDict(extra="allow", protected_namespaces=())

    model: Optional[str] = None
    provider: Optional[str] = None
    tokens: Optional[int] = None
    response_time_ms: Optional[float] = None
    intent: Optional[str] = None
    confidence: Optional[float] = None
    error: Optional[bool] = None
    response_kind: Optional[str] = None  # search_result, voice_command, ...


class TextMetadata(GenerationInfo):
    kind: Literal["text"] = "text"


class ImageMetadata(GenerationInfo):
    kind: Literal["image"] = "image"
    image_url: Optional[str] = None
    image_prompt: Optional[str] = None
    image_size: Optional[str] = None


class CodeMetadata(GenerationInfo):
    kind: Literal["code"] = "code"
    language: Optional[str] = None
    syntax_highlighting: Optional[str] = None
    execution_result: Optional[str] = None


class VoiceMetadata(GenerationInfo):
    kind: Literal["voice"] = "voice"
    audio_url: Optional[str] = None
    duration: Optional[float] = None
    transcribed_text: Optional[str] = None


class FileMetadata(GenerationInfo):
    kind: Literal["file"] = "file"
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    file_type: Optional[str] = None
    download_url: Optional[str] = None


class SystemMetadata(GenerationInfo):
    kind: Literal["system"] = "system"


MessageMetadata = Annotated[
    Union[
        TextMetadata,
        ImageMetadata,
        CodeMetadata,
        VoiceMetadata,
        FileMetadata,
        SystemMetadata,
    ],
    Field(discriminator="kind"),
]

_metadata_adapter: TypeAdapter = TypeAdapter(MessageMetadata)


def build_metadata(
    message_type: "MessageType | str", data: Optional[dict[str, Any]] = None
) -> MessageMetadata:
    """
    Validate a metadata mapping against the variant for message_type.

    The kind discriminator is always taken from message_type; a stale
    "kind" key in data is overwritten.

    Raises:
        pydantic.ValidationError: If a known field has the wrong type
    """
    payload = dict(data or {})
    payload["kind"] = MessageType(message_type).value
    return _metadata_adapter.validate_python(payload)


def metadata_to_dict(metadata: GenerationInfo) -> dict[str, Any]:
    """Serialize a variant for JSON storage, dropping unset fields."""
    return metadata.model_dump(mode="json", exclude_none=True)


def normalize_metadata(
    message_type: "MessageType | str", data: Optional[dict[str, Any]] = None
) -> dict[str, Any]:
    """Round-trip data through its variant and return the storable mapping."""
    return metadata_to_dict(build_metadata(message_type, data))
