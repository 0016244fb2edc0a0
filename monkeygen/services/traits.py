"""
Trait pools: the fixed axes of variation and the text fragments each one
can take. Loaded once at import, never mutated.
"""
import random
from types import MappingProxyType
from typing import Iterable, Mapping, Sequence

from monkeygen.errors import UnknownTraitError

TRAIT_POOLS: dict[str, list[str]] = {
    "background": [
        "deep space galaxy with colorful nebula background",
        "vibrant neon city at night background",
        "lush tropical jungle background",
        "golden sunset desert dunes background",
        "underwater ocean scene background",
        "snowy mountain peaks background",
        "cherry blossom garden background",
        "cyberpunk alley with neon lights background",
        "abstract colorful geometric pattern background",
        "dark stormy sky with lightning background",
        "bright solid sky blue background",
        "pastel gradient pink to purple background",
    ],
    "hat": [
        "wearing a shiny gold crown",
        "wearing a classic black top hat with red band",
        "wearing a brown cowboy hat",
        "wearing a red beanie with white pompom",
        "wearing a navy NY baseball cap",
        "wearing a white chef hat",
        "wearing a viking helmet with horns",
        "wearing a pirate hat with skull",
        "wearing a colorful jester hat",
        "wearing a wizard hat with stars",
        "no hat",
        "no hat",
    ],
    "glasses": [
        "wearing sleek black sunglasses",
        "wearing red and blue 3D glasses",
        "wearing round gold wire-frame glasses",
        "wearing heart-shaped pink sunglasses",
        "wearing a golden monocle",
        "wearing futuristic LED glasses",
        "wearing classic aviator sunglasses",
        "no glasses",
        "no glasses",
    ],
    "fur": [
        "with vibrant golden yellow fur",
        "with deep blue fur",
        "with bright purple fur",
        "with hot pink fur",
        "with neon green fur",
        "with silver white fur",
        "with original brown fur",
        "with dark crimson red fur",
        "with cyan teal fur",
        "with orange fur",
    ],
    "chain": [
        "wearing a thick gold chain with diamond pendant",
        "wearing a silver chain necklace",
        "wearing multiple layered gold chains",
        "wearing a platinum chain with gem",
        "no chain",
        "no chain",
    ],
    "expression": [
        "with a big happy toothy smile",
        "with a cool serious expression",
        "with a surprised wide-eyed look",
        "with a laughing open mouth expression",
        "with a winking playful expression",
        "with a determined fierce look",
        "with a smug smirk",
    ],
    "clothes": [
        "wearing a black leather biker jacket",
        "wearing a colorful hawaiian shirt",
        "wearing an elegant black tuxedo with bow tie",
        "wearing a red hooded sweatshirt",
        "wearing a traditional japanese kimono",
        "wearing futuristic silver armor",
        "wearing a denim jacket with patches",
        "wearing a suit and tie",
        "no shirt",
    ],
    "earring": [
        "with a gold hoop earring",
        "with a diamond stud earring",
        "with no earring",
        "with no earring",
    ],
}

TRAIT_LABELS: dict[str, str] = {
    "background": "🌈 Background",
    "hat": "🎩 Hat",
    "glasses": "👓 Glasses",
    "fur": "🎨 Fur Color",
    "chain": "📿 Chain",
    "expression": "😀 Expression",
    "clothes": "👕 Clothes",
    "earring": "💎 Earring",
}

DEFAULT_ACTIVE_TRAITS = ("background", "hat", "glasses", "fur", "chain", "expression", "clothes")

COUNT_CHOICES = (1, 3, 5, 10, 20)
DEFAULT_COUNT = 3


class TraitPoolRegistry:
    def __init__(
        self,
        pools: Mapping[str, Sequence[str]] = TRAIT_POOLS,
        labels: Mapping[str, str] = TRAIT_LABELS,
    ):
        for name, pool in pools.items():
            if not pool:
                raise ValueError(f"Trait pool {name!r} is empty")
        self._pools = MappingProxyType({name: tuple(pool) for name, pool in pools.items()})
        self._labels = MappingProxyType(dict(labels))

    def list_categories(self) -> list[str]:
        """Category ids in registry order."""
        return list(self._pools)

    def __contains__(self, category: str) -> bool:
        return category in self._pools

    def pool(self, category: str) -> tuple[str, ...]:
        try:
            return self._pools[category]
        except KeyError:
            raise UnknownTraitError(category) from None

    def label(self, category: str) -> str:
        self.pool(category)
        return self._labels.get(category, category.title())

    def sample(self, category: str, rng: random.Random | None = None) -> str:
        """Pick one fragment uniformly at random."""
        return (rng or random).choice(self.pool(category))

    def check(self, categories: Iterable[str]) -> None:
        """Raise UnknownTraitError for the first category not in the registry."""
        for category in categories:
            if category not in self._pools:
                raise UnknownTraitError(category)


trait_registry = TraitPoolRegistry()
