"""
===============================================================================
TARJETA CRC — domain/diagram.py
===============================================================================

Módulo:
    Tipos de diagrama (enum + tabla de comportamiento)

Responsabilidades:
    - Enumerar los tipos de diagrama PlantUML soportados.
    - Asociar a cada tipo su código estable, nombre visible y prefijo de prompt
      en UNA tabla (sin switch dispersos por el código).
    - Envolver/extraer contenido con los delimitadores @startuml/@enduml.

Colaboradores:
    - infrastructure/services/diagram: build_diagram_prompt + normalización.
===============================================================================
"""

from __future__ import annotations

from enum import Enum
from typing import Final, Iterable, Optional

START_TAG: Final[str] = "@startuml"
END_TAG: Final[str] = "@enduml"


class DiagramType(Enum):
    """
    Cada miembro es una fila de la tabla: (code, display_name, prompt_prefix).

    El valor del enum es el código estable (serializable).
    """

    CLASS = (
        "class",
        "Class Diagram",
        "Create a PlantUML class diagram that shows classes, their attributes, "
        "methods, and relationships.",
    )
    SEQUENCE = (
        "sequence",
        "Sequence Diagram",
        "Create a PlantUML sequence diagram that shows the interaction between "
        "objects over time.",
    )
    USECASE = (
        "usecase",
        "Use Case Diagram",
        "Create a PlantUML use case diagram that shows actors and their "
        "interactions with the system.",
    )
    ACTIVITY = (
        "activity",
        "Activity Diagram",
        "Create a PlantUML activity diagram that shows the workflow and "
        "decision points.",
    )
    COMPONENT = (
        "component",
        "Component Diagram",
        "Create a PlantUML component diagram that shows system components and "
        "their dependencies.",
    )
    DEPLOYMENT = (
        "deployment",
        "Deployment Diagram",
        "Create a PlantUML deployment diagram that shows the physical "
        "deployment of artifacts.",
    )
    STATE = (
        "state",
        "State Diagram",
        "Create a PlantUML state diagram that shows state transitions of an object.",
    )
    OBJECT = (
        "object",
        "Object Diagram",
        "Create a PlantUML object diagram that shows object instances and their "
        "relationships.",
    )

    def __init__(self, code: str, display_name: str, prompt_prefix: str) -> None:
        self.code = code
        self.display_name = display_name
        self.prompt_prefix = prompt_prefix

    @property
    def start_tag(self) -> str:
        return START_TAG

    @property
    def end_tag(self) -> str:
        return END_TAG

    @classmethod
    def from_code(cls, code: str) -> "DiagramType":
        """Resuelve un tipo por código (case-insensitive)."""
        normalized = (code or "").strip().lower()
        for member in cls:
            if member.code == normalized:
                return member
        raise ValueError(f"Unknown diagram type: {code!r}")

    def wrap_content(self, content: str) -> str:
        """Envuelve contenido con los delimitadores si aún no los tiene."""
        body = (content or "").strip()
        if body.startswith(START_TAG) and body.endswith(END_TAG):
            return body
        return f"{START_TAG}\n{body}\n{END_TAG}"

    def extract_content(self, wrapped: str) -> str:
        """Devuelve el cuerpo entre los delimitadores (ignora texto alrededor)."""
        body = (wrapped or "").strip()
        start = body.find(START_TAG)
        end = body.rfind(END_TAG)
        if start != -1 and end > start:
            return body[start + len(START_TAG) : end].strip()
        return body


def build_diagram_prompt(
    diagram_type: DiagramType,
    content: str,
    custom_instructions: Optional[str] = None,
    domain_tags: Iterable[str] = (),
) -> str:
    """
    Prompt de diagrama: prefijo del tipo, instrucciones extra, contenido,
    tags de dominio y requisitos de salida (en ese orden).
    """
    parts = [diagram_type.prompt_prefix]
    if custom_instructions and custom_instructions.strip():
        parts.append(f"\nAdditional instructions: {custom_instructions.strip()}")

    parts.append("\n\nContent to analyze:\n")
    parts.append(content)

    tags = sorted(t for t in domain_tags if t)
    if tags:
        parts.append("\n\nDomain context: This content is related to: ")
        parts.append(", ".join(tags))

    parts.append("\n\nOutput requirements:")
    parts.append("\n- Generate valid PlantUML code only")
    parts.append(f"\n- Start with {diagram_type.start_tag}")
    parts.append(f"\n- End with {diagram_type.end_tag}")
    parts.append("\n- Keep names in the language of the source content")
    parts.append("\n- Include proper UML notation and relationships")
    parts.append("\n- Focus on the most important elements of the content")
    return "".join(parts)
