"""
Prompt Composer

Turns a style description plus the active trait categories into one image
edit instruction. Every call samples fresh trait values, so two prompts
built from the same inputs normally differ.
"""
import logging
import random
from typing import Iterable

from monkeygen.services.traits import TraitPoolRegistry, trait_registry

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = (
    "Generate a cartoon NFT monkey character. Art style: {style}. \n"
    "Traits to apply: {traits}.{extra}\n"
    "Keep the same species (monkey/chimp), same cute cartoon aesthetic, same art style. "
    "Square format, centered character."
)


class PromptComposer:
    def __init__(
        self,
        registry: TraitPoolRegistry = trait_registry,
        rng: random.Random | None = None,
    ):
        self.registry = registry
        self.rng = rng or random.Random()

    def sample_traits(self, active_categories: Iterable[str]) -> list[str]:
        """One fragment per active category, in registry order."""
        active = set(active_categories)
        self.registry.check(active)

        fragments = [
            self.registry.sample(category, self.rng)
            for category in self.registry.list_categories()
            if category in active
        ]
        return [f for f in fragments if f]

    def compose(
        self,
        style_description: str,
        active_categories: Iterable[str],
        extra_prompt: str | None = None,
    ) -> str:
        parts = self.sample_traits(active_categories)
        extra = (extra_prompt or "").strip()

        prompt = PROMPT_TEMPLATE.format(
            style=style_description,
            traits="; ".join(parts),
            extra=f" Additional style: {extra}." if extra else "",
        )
        logger.debug(f"[composer] {len(parts)} trait(s), {len(prompt)} chars")
        return prompt
