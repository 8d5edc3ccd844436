"""Results returned by the generation flows."""

from __future__ import annotations

from pydantic import BaseModel, Field

from scriptboard.models.records import Asset, AssetRendition, GenerationJob


class SingleImageResult(BaseModel):
    job: GenerationJob
    asset: Asset
    rendition: AssetRendition


class PackAssets(BaseModel):
    characters: list[Asset] = Field(default_factory=list)
    environments: list[Asset] = Field(default_factory=list)
    nature: list[Asset] = Field(default_factory=list)

    def all(self) -> list[Asset]:
        return [*self.characters, *self.environments, *self.nature]


class ProjectPackResult(BaseModel):
    job: GenerationJob
    assets: PackAssets


class StoryboardFrame(BaseModel):
    """One generated storyboard frame with the directives used to render it."""

    index: int = Field(ge=1)
    title: str
    summary: str
    character_consistency: str
    composition: str
    nature: str
    asset: Asset
    rendition: AssetRendition


class StoryboardResult(BaseModel):
    job: GenerationJob
    scenes: list[StoryboardFrame] = Field(default_factory=list)
