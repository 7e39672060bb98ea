"""Static generation catalog shared by chat sessions, stories and images."""

from __future__ import annotations

from typing import ClassVar, Final

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_MODEL_ID: Final = "lucid-v1-medium"


class ModelInfo(BaseModel):
    id: str
    name: str
    size: str


class AspectRatio(BaseModel):
    id: str
    name: str
    width: int
    height: int


class ImageStyle(BaseModel):
    id: str
    name: str


AVAILABLE_MODELS: Final[tuple[ModelInfo, ...]] = (
    ModelInfo(id="lucid-v1-medium", name="Lucid V1 Medium", size="sm"),
    ModelInfo(id="lucid-v1-extra-large", name="Lucid V1 Extra Large", size="xl"),
)

ASPECT_RATIOS: Final[tuple[AspectRatio, ...]] = (
    AspectRatio(id="square", name="Square (1:1)", width=1024, height=1024),
    AspectRatio(id="portrait", name="Portrait (3:4)", width=768, height=1024),
    AspectRatio(id="landscape", name="Landscape (4:3)", width=1024, height=768),
)

IMAGE_STYLES: Final[tuple[ImageStyle, ...]] = (
    ImageStyle(id="none", name="None"),
    ImageStyle(id="anime", name="Anime"),
    ImageStyle(id="realistic", name="Realistic"),
    ImageStyle(id="fantasy", name="Fantasy"),
    ImageStyle(id="dark", name="Dark/Gothic"),
    ImageStyle(id="vibrant", name="Vibrant"),
)


class SamplingParams(BaseModel):
    """Text generation knobs, stored as JSON with the client's camelCase keys."""

    model_config: ClassVar[ConfigDict] = ConfigDict(populate_by_name=True, extra="forbid")

    temperature: float | None = Field(default=None, ge=0, le=2)
    top_p: float | None = Field(default=None, ge=0, le=1, alias="topP")
    top_k: int | None = Field(default=None, ge=1, le=100, alias="topK")
    min_p: float | None = Field(default=None, ge=0, le=1, alias="minP")
    max_tokens: int | None = Field(default=None, ge=1, le=4096, alias="maxTokens")
    presence_penalty: float | None = Field(default=None, ge=-2, le=2, alias="presencePenalty")
    frequency_penalty: float | None = Field(default=None, ge=-2, le=2, alias="frequencyPenalty")
    repetition_penalty: float | None = Field(
        default=None, ge=0.1, le=2, alias="repetitionPenalty"
    )
    stop_sequences: list[str] | None = Field(default=None, alias="stopSequences")

    def to_json(self) -> dict[str, object]:
        return self.model_dump(by_alias=True, exclude_none=True)


DEFAULT_SAMPLING_PARAMS: Final = SamplingParams(
    temperature=0.8,
    top_p=0.95,
    top_k=50,
    min_p=0.05,
    max_tokens=500,
    presence_penalty=0,
    frequency_penalty=0,
    repetition_penalty=1.0,
)


def default_sampling_params() -> SamplingParams:
    return DEFAULT_SAMPLING_PARAMS.model_copy()
