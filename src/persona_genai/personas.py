from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, TypeAdapter
from pydantic.alias_generators import to_camel


class Persona(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    # Avatar URL; empty means no picture.
    image: str = ""
    bio: str = ""


DEFAULT_PERSONAS: tuple[Persona, ...] = (
    Persona(
        id="tech_persona_1",
        name="Dev Dan - Full-Stack Developer",
        image="",
        bio=(
            "Dan is a 32-year-old full-stack developer working for a mid-sized tech startup in Austin, TX. "
            "He spends most of his day coding in React and Node.js, and loves exploring new technologies in his "
            "free time. He values tools that boost productivity and help him stay focused during deep work sessions."
        ),
    ),
    Persona(
        id="tech_persona_2",
        name="Product Paula - UX/UI Designer",
        image="",
        bio=(
            "Paula is a 28-year-old UX/UI designer living in San Francisco. She works remotely for a SaaS company "
            "and specializes in creating intuitive user experiences. Paula is always on the lookout for design "
            "inspiration and tools that help her communicate ideas effectively with engineering teams."
        ),
    ),
    Persona(
        id="tech_persona_3",
        name="Tech Tom - Startup Founder",
        image="",
        bio=(
            "Tom is a 41-year-old entrepreneur who recently founded his third tech startup in New York City. "
            "With a background in machine learning, he now focuses on business strategy and fundraising. Tom needs "
            "tools that help him make data-driven decisions and stay connected with his distributed team."
        ),
    ),
)

_persona_list = TypeAdapter(list[Persona])


def load_personas(path: str | Path | None = None) -> list[Persona]:
    """
    Seed personas for a new session. A JSON file (list of {id, name, image, bio})
    replaces the built-in set when configured.
    """
    if not path:
        return [p.model_copy() for p in DEFAULT_PERSONAS]
    raw = json.loads(Path(path).read_text("utf-8"))
    personas = _persona_list.validate_python(raw)
    ensure_unique_ids(personas)
    return personas


def ensure_unique_ids(personas: list[Persona]) -> None:
    seen: set[str] = set()
    for p in personas:
        if p.id in seen:
            raise ValueError(f"duplicate persona id '{p.id}'")
        seen.add(p.id)
