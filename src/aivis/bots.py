# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Bot identities, AI products, and the bot -> product visibility relation.

A product counts as *visible* when at least one of the bots feeding it can
still reach the page. Several checks (robots.txt, per-bot probes) reduce their
per-bot findings to product-level visible/hidden lists through
``BotCatalog.product_visibility``.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from importlib import resources

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from aivis.errors import ConfigError

# Classification tags used to select bots for accessibility probes
AI_FOUNDATION_MODEL_TRAINING = "AI_FOUNDATION_MODEL_TRAINING"
AI_SEARCH_INDEX = "AI_SEARCH_INDEX"
AI_USER_INTERACTION = "AI_USER_INTERACTION"
SEARCH_RESULTS = "SEARCH_RESULTS"

ALL_PRODUCTS_MARKER = "*"


class BotIdentity(BaseModel):
    """One automated crawler as seen by a web server."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Display name for reports")
    identifier: str = Field(..., min_length=1, description="robots.txt / meta tag token")
    user_agent: str = Field(..., min_length=1, description="Full User-Agent header value")
    description: str = ""
    tags: tuple[str, ...] = ()
    related_products: tuple[str, ...] = ()

    def feeds(self, product: str) -> bool:
        return ALL_PRODUCTS_MARKER in self.related_products or product in self.related_products


class _CatalogFile(BaseModel):
    products: list[str] = Field(..., min_length=1)
    bots: list[BotIdentity] = Field(..., min_length=1)


@dataclass(frozen=True, slots=True)
class ProductVisibility:
    """Product-level outcome of a set of per-bot findings."""

    visible: tuple[str, ...]
    hidden: tuple[str, ...]

    @property
    def total(self) -> int:
        return len(self.visible) + len(self.hidden)

    @property
    def visible_fraction(self) -> float:
        return len(self.visible) / self.total if self.total else 0.0

    def summary(self, *, all_visible: str, none_visible: str, partial_prefix: str = "") -> str:
        """Human-readable visible/hidden breakdown shared by robots and bot checks."""
        if not self.hidden:
            return all_visible
        if not self.visible:
            return none_visible
        return (
            f"{len(self.visible)}/{self.total} visible{partial_prefix}\n"
            f"   ✓ Visible: {', '.join(self.visible)}\n"
            f"   ❌ Hidden: {', '.join(self.hidden)}"
        )


class BotCatalog:
    """Ordered, read-only collection of bot identities and AI products."""

    def __init__(self, bots: list[BotIdentity] | tuple[BotIdentity, ...], products: list[str] | tuple[str, ...]) -> None:
        if not bots:
            raise ConfigError("bot catalog must contain at least one bot")
        names = [b.name for b in bots]
        if len(set(names)) != len(names):
            raise ConfigError("bot names must be unique")
        self._bots = tuple(bots)
        self._products = tuple(products)

    @classmethod
    def from_yaml(cls, text: str) -> BotCatalog:
        try:
            raw = yaml.safe_load(text)
            parsed = _CatalogFile.model_validate(raw)
        except (yaml.YAMLError, ValidationError) as e:
            raise ConfigError(f"invalid bot catalog: {e}") from e
        return cls(parsed.bots, parsed.products)

    @property
    def bots(self) -> tuple[BotIdentity, ...]:
        return self._bots

    @property
    def products(self) -> tuple[str, ...]:
        return self._products

    def __len__(self) -> int:
        return len(self._bots)

    def with_tag(self, tag: str) -> tuple[BotIdentity, ...]:
        return tuple(b for b in self._bots if tag in b.tags)

    def bots_for_product(self, product: str, bots: tuple[BotIdentity, ...] | None = None) -> tuple[BotIdentity, ...]:
        pool = self._bots if bots is None else bots
        return tuple(b for b in pool if b.feeds(product))

    def product_visibility(
        self,
        blocked_bot_names: set[str] | frozenset[str],
        bots: tuple[BotIdentity, ...] | None = None,
    ) -> ProductVisibility:
        """Map blocked bots to visible/hidden products.

        With *bots* given, only products fed by one of those bots are
        considered, and only those bots can make a product visible.
        """
        visible: list[str] = []
        hidden: list[str] = []
        for product in self._products:
            feeders = self.bots_for_product(product, bots)
            if bots is not None and not feeders:
                continue
            if any(b.name not in blocked_bot_names for b in feeders):
                visible.append(product)
            else:
                hidden.append(product)
        return ProductVisibility(visible=tuple(visible), hidden=tuple(hidden))


@functools.lru_cache(maxsize=1)
def default_catalog() -> BotCatalog:
    """Bundled catalog from ``aivis/data/bots.yaml`` (loaded once)."""
    text = resources.files("aivis.data").joinpath("bots.yaml").read_text(encoding="utf-8")
    return BotCatalog.from_yaml(text)


def is_content_similar(size_a: int, size_b: int, tolerance: float) -> bool:
    """True when ``|a - b| / avg(a, b) <= tolerance``; two empty bodies are similar."""
    avg = (size_a + size_b) / 2
    if avg == 0:
        return size_a == 0 and size_b == 0
    return abs(size_a - size_b) / avg <= tolerance
