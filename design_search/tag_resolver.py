"""Turn a free-text design requirement into taxonomy tags with a chain of LLM calls.

1. One call decides which dimensions the requirement talks about.
2. Per relevant dimension, one call picks first-level tags from a numbered list.
3. A second call picks second-level tags under each chosen parent.

Dimensions are resolved concurrently. Every model answer is sanitized against
the taxonomy, so the result only ever contains known tags in their canonical
spelling. LLM failures degrade to empty selections instead of failing the
whole request.
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable

from design_search import llm
from design_search.models import DimensionIntent, DimensionSelection
from design_search.taxonomy import Taxonomy

logger = logging.getLogger(__name__)

GenerateJson = Callable[[str, str], object]


@dataclass(frozen=True)
class DimensionConfig:
    key: str
    display_name: str
    description: str
    search_field: str


def _trim_text(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def sanitize_selections(selections, allowed: list[str]) -> list[str]:
    """Keep only allowed values, in canonical spelling, first occurrence wins."""
    if not selections or not isinstance(selections, list):
        return []
    allowed_lookup = {item.lower(): item for item in allowed}
    unique: dict[str, str] = {}
    for item in selections:
        trimmed = _trim_text(item)
        if not trimmed:
            continue
        matched = allowed_lookup.get(trimmed.lower())
        if matched and matched.lower() not in unique:
            unique[matched.lower()] = matched
    return list(unique.values())


def sanitize_second_level_selections(selections, lookup: dict[str, list[str]]) -> dict[str, list[str]]:
    if not selections or not isinstance(selections, dict):
        return {}
    parent_lookup = {key.lower(): key for key in lookup}
    result: dict[str, list[str]] = {}
    for parent_raw, children in selections.items():
        if not isinstance(parent_raw, str):
            continue
        parent = parent_lookup.get(parent_raw.strip().lower())
        if not parent:
            continue
        allowed = lookup.get(parent) or []
        if not allowed:
            continue
        sanitized = sanitize_selections(children, allowed)
        if sanitized:
            result[parent] = sanitized
    return result


def _to_number(value) -> float | None:
    """Loose numeric coercion: null, blank strings and empty lists count as 0."""
    if value is None:
        return 0.0
    if isinstance(value, list):
        if not value:
            return 0.0
        return _to_number(value[0]) if len(value) == 1 else None
    if isinstance(value, dict):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_confidence(raw: dict) -> float | None:
    """Rounded confidence when the key is present, None when absent or not a finite number."""
    if "confidence" not in raw:
        return None
    number = _to_number(raw["confidence"])
    if number is None or not math.isfinite(number):
        return None
    return round(number, 2)


_INTENT_PROMPT = """\
Decide strictly whether the requirement below touches each of the given design
dimensions. Do not infer or complete anything; rely only on what the text says.

Requirement: \"\"\"{requirement}\"\"\"
Dimensions ({subject}):
{dimensions}

Matching rules:
- "relevant" may be true only when the requirement explicitly names the dimension
  or a clear synonym of it; otherwise it must be false.
- Never infer from common sense, industry conventions or typical page structures.
- "reason" (optional) must only quote evidence copied from the requirement, in quotes.
  Omit it when "relevant" is false.
- Return "confidence": 1 only when "relevant" is true and the evidence is explicit.

Answer with JSON shaped like:
{{
  "dimensions": {{
{example}
  }}
}}
If a dimension has no direct evidence, return {{ "relevant": false }} for it."""

_FIRST_LEVEL_PROMPT = """\
Requirement: \"\"\"{requirement}\"\"\"
Dimension: {display_name} ({key})
{description}
First-level tag options:
{options}
Pick 0~{max_count} best-fitting first-level tags; return an empty array if none fits.
Answer with JSON: {{"selected": ["Tag A", "Tag B"]}}"""

_SECOND_LEVEL_PROMPT = """\
Requirement: \"\"\"{requirement}\"\"\"
Dimension: {display_name} ({key})
Selected first-level tags: {selected}
For each first-level tag, pick 0~{max_count} best-fitting second-level tags from its options.
Second-level options:
{options}
Example output: {{"selected": {{"First-level A": ["Second 1", "Second 2"]}}}}
Leave an array empty when nothing fits."""


class TagResolver:
    def __init__(
        self,
        dimensions: list[DimensionConfig],
        taxonomies: dict[str, Taxonomy],
        system_instruction: str,
        intent_subject: str,
        max_first_level: int,
        max_second_level: int,
        generate_json: GenerateJson | None = None,
    ):
        self.dimensions = dimensions
        self.taxonomies = taxonomies
        self.system_instruction = system_instruction
        self.intent_subject = intent_subject
        self.max_first_level = max_first_level
        self.max_second_level = max_second_level
        self._generate_json = generate_json or llm.generate_json_response

    def _ask(self, prompt: str):
        return self._generate_json(prompt, self.system_instruction)

    def detect_dimension_intent(self, requirement: str) -> dict[str, DimensionIntent]:
        descriptions = "\n".join(
            f"{d.key}: {d.display_name} - {d.description}" for d in self.dimensions
        )
        example = ",\n".join(
            f'    "{d.key}": {{ "relevant": true/false, "reason": "\\"...quote...\\"", "confidence": 1 }}'
            for d in self.dimensions
        )
        prompt = _INTENT_PROMPT.format(
            requirement=requirement,
            subject=self.intent_subject,
            dimensions=descriptions,
            example=example,
        )

        response = None
        try:
            response = self._ask(prompt)
        except Exception as e:
            logger.warning("[AI] detect_dimension_intent failed: %s", e)

        raw_dimensions = response.get("dimensions") if isinstance(response, dict) else None
        if not isinstance(raw_dimensions, dict):
            raw_dimensions = {}

        intents = {}
        for d in self.dimensions:
            raw = raw_dimensions.get(d.key)
            if not isinstance(raw, dict):
                raw = {}
            intents[d.key] = DimensionIntent(
                relevant=raw.get("relevant") is True,
                reason=_trim_text(raw.get("reason")),
                confidence=_parse_confidence(raw),
            )
        return intents

    def select_first_level_tags(self, requirement: str, dimension: DimensionConfig) -> list[str]:
        options = self.taxonomies[dimension.key].first_level
        if not options:
            return []

        prompt = _FIRST_LEVEL_PROMPT.format(
            requirement=requirement,
            display_name=dimension.display_name,
            key=dimension.key,
            description=dimension.description,
            options="\n".join(f"{i}. {name}" for i, name in enumerate(options, 1)),
            max_count=self.max_first_level,
        )
        try:
            response = self._ask(prompt)
        except Exception as e:
            logger.warning("[AI] select_first_level_tags(%s) failed: %s", dimension.key, e)
            return []
        selected = response.get("selected") if isinstance(response, dict) else None
        return sanitize_selections(selected, options)

    def select_second_level_tags(
        self, requirement: str, dimension: DimensionConfig, first_level: list[str]
    ) -> dict[str, list[str]]:
        if not first_level:
            return {}

        lookup = self.taxonomies[dimension.key].second_level_lookup
        entries = [(parent, lookup[parent]) for parent in first_level if lookup.get(parent)]
        if not entries:
            return {}

        lines = []
        for parent, children in entries:
            quoted = ", ".join(f'"{c}"' for c in children)
            lines.append(f"{parent}: [{quoted}]")
        options = "\n".join(lines)
        prompt = _SECOND_LEVEL_PROMPT.format(
            requirement=requirement,
            display_name=dimension.display_name,
            key=dimension.key,
            selected=", ".join(first_level),
            max_count=self.max_second_level,
            options=options,
        )
        try:
            response = self._ask(prompt)
        except Exception as e:
            logger.warning("[AI] select_second_level_tags(%s) failed: %s", dimension.key, e)
            return {}
        selected = response.get("selected") if isinstance(response, dict) else None
        return sanitize_second_level_selections(selected, lookup)

    def _resolve_one(self, requirement: str, dimension: DimensionConfig, intent: DimensionIntent | None) -> DimensionSelection:
        if intent is None or not intent.relevant:
            return DimensionSelection()
        try:
            first_level = self.select_first_level_tags(requirement, dimension)
            mapping = self.select_second_level_tags(requirement, dimension, first_level)
        except Exception as e:
            logger.warning("[AI] resolve_dimension_selections(%s) failed: %s", dimension.key, e)
            return DimensionSelection()

        second_level = []
        for children in mapping.values():
            for child in children:
                if child not in second_level:
                    second_level.append(child)
        return DimensionSelection(first_level=first_level, second_level=second_level, mapping=mapping)

    def resolve_dimension_selections(
        self, requirement: str, intents: dict[str, DimensionIntent]
    ) -> dict[str, DimensionSelection]:
        with ThreadPoolExecutor(max_workers=len(self.dimensions) or 1) as executor:
            selections = list(executor.map(
                lambda d: self._resolve_one(requirement, d, intents.get(d.key)),
                self.dimensions,
            ))
        return {d.key: s for d, s in zip(self.dimensions, selections)}

    def resolve(self, requirement: str) -> tuple[dict[str, DimensionIntent], dict[str, DimensionSelection]]:
        intents = self.detect_dimension_intent(requirement)
        selections = self.resolve_dimension_selections(requirement, intents)
        relevant = [k for k, v in intents.items() if v.relevant]
        logger.info("Resolved tags for %d relevant dimension(s): %s", len(relevant), relevant)
        return intents, selections
