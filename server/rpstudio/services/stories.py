from __future__ import annotations

from rpstudio.repositories.stories import (
    StoryCharacterOut,
    StoryOut,
    get_story,
    list_story_characters,
)


class StoryDetail(StoryOut):
    characters: list[StoryCharacterOut]


def get_story_detail(story_id: int, user_id: int) -> StoryDetail | None:
    story = get_story(story_id, user_id)
    if story is None:
        return None
    return StoryDetail(
        **story.model_dump(), characters=list_story_characters(story_id, user_id)
    )
