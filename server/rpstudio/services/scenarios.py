from __future__ import annotations

import logging

from sqlalchemy import select

from rpstudio.core.errors import NotFound
from rpstudio.db.models import Scenario, ScenarioCharacter, ScenarioInteraction
from rpstudio.repositories._common import insert_row, write_session
from rpstudio.repositories.scenarios import (
    ScenarioCharacterOut,
    ScenarioInteractionOut,
    ScenarioOut,
    get_scenario,
    list_scenario_characters,
    list_scenario_interactions,
)


logger = logging.getLogger(__name__)

COPY_TITLE_SUFFIX = " (Copy)"


class ScenarioDetail(ScenarioOut):
    characters: list[ScenarioCharacterOut]
    interactions: list[ScenarioInteractionOut]


def get_scenario_detail(scenario_id: int) -> ScenarioDetail | None:
    scenario = get_scenario(scenario_id)
    if scenario is None:
        return None
    return ScenarioDetail(
        **scenario.model_dump(),
        characters=list_scenario_characters(scenario_id),
        interactions=list_scenario_interactions(scenario_id),
    )


def copy_scenario(scenario_id: int, user_id: int) -> int:
    """Clone a scenario and its ordered children into a private scenario owned by ``user_id``.

    The source may belong to anyone. Everything runs in one transaction, so a
    failure leaves no half-populated clone behind.
    """
    with write_session("copy scenario") as db:
        source = db.get(Scenario, scenario_id)
        if source is None:
            raise NotFound("Scenario", scenario_id)

        new_id = insert_row(
            db,
            Scenario(
                user_id=user_id,
                title=f"{source.title}{COPY_TITLE_SUFFIX}",
                prompt_description=source.prompt_description,
                display_description=source.display_description,
                image_url=source.image_url,
                is_public=False,
            ),
        )

        characters = db.execute(
            select(ScenarioCharacter)
            .where(ScenarioCharacter.scenario_id == scenario_id)
            .order_by(ScenarioCharacter.order_index.asc(), ScenarioCharacter.id.asc())
        ).scalars().all()
        for char in characters:
            db.add(
                ScenarioCharacter(
                    scenario_id=new_id,
                    character_id=char.character_id,
                    name=char.name,
                    label=char.label,
                    prompt_description=char.prompt_description,
                    is_user_character=char.is_user_character,
                    order_index=char.order_index,
                )
            )

        interactions = db.execute(
            select(ScenarioInteraction)
            .where(ScenarioInteraction.scenario_id == scenario_id)
            .order_by(ScenarioInteraction.order_index.asc(), ScenarioInteraction.id.asc())
        ).scalars().all()
        for interaction in interactions:
            db.add(
                ScenarioInteraction(
                    scenario_id=new_id,
                    interaction_type=interaction.interaction_type,
                    character_label=interaction.character_label,
                    content=interaction.content,
                    is_sticky=interaction.is_sticky,
                    order_index=interaction.order_index,
                )
            )
        db.flush()

    logger.info(
        "Copied scenario %s -> %s for user %s (%d characters, %d interactions)",
        scenario_id,
        new_id,
        user_id,
        len(characters),
        len(interactions),
    )
    return new_id
