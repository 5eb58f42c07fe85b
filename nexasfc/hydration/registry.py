"""
NexaSFC Hydration Registry
==========================

Tracks which window attributes have been claimed during one render.

A registry belongs to a single render; the view creates a fresh one per
call. Sharing one between concurrent renders would report collisions
that do not exist.

Example:
    registry = HydrationRegistry()
    registry.register("appData", "layouts/main.sfc:1")
    registry.register("appData", "pages/home.sfc:1", merge_strategy="deep")
    registry.register("appData", "pages/about.sfc:1")  # HydrationCollisionError
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from nexasfc.errors import HydrationCollisionError, ValidationError


@dataclass(frozen=True)
class HydrationClaim:
    """One data section's claim on a window attribute."""
    window: str
    source_location: str
    merge_strategy: Optional[str] = None


class HydrationRegistry:
    """Per-render record of window attribute claims."""

    def __init__(self) -> None:
        self._claims: Dict[str, List[HydrationClaim]] = {}

    def register(
        self,
        window: str,
        source_location: str,
        merge_strategy: Optional[str] = None,
    ) -> HydrationClaim:
        """
        Claim a window attribute.

        Args:
            window: Window attribute name
            source_location: Where the claim comes from, e.g. ``home.sfc:1``
            merge_strategy: Declared merge strategy, if any

        Returns:
            The recorded claim

        Raises:
            ValidationError: If window or source_location is missing
            HydrationCollisionError: If the attribute is already claimed and
                no merge strategy was declared
        """
        if window is None or not str(window).strip():
            raise ValidationError("Window attribute cannot be empty")
        if source_location is None:
            raise ValidationError("Source location cannot be empty")

        claim = HydrationClaim(window, source_location, merge_strategy or None)
        existing = self._claims.get(window)

        if existing and claim.merge_strategy is None:
            raise HydrationCollisionError(
                window, existing[0].source_location, source_location
            )

        self._claims.setdefault(window, []).append(claim)
        return claim

    def get(self, window: str) -> Optional[HydrationClaim]:
        """First claim for ``window``."""
        claims = self._claims.get(window)
        return claims[0] if claims else None

    def claims_for(self, window: str) -> List[HydrationClaim]:
        return list(self._claims.get(window, ()))

    @property
    def claims(self) -> Dict[str, HydrationClaim]:
        """First claim per window attribute."""
        return {window: claims[0] for window, claims in self._claims.items()}

    @property
    def windows(self) -> List[str]:
        return list(self._claims)

    def clear(self) -> None:
        self._claims.clear()

    def __contains__(self, window: str) -> bool:
        return window in self._claims

    def __len__(self) -> int:
        return len(self._claims)

    def __iter__(self) -> Iterator[str]:
        return iter(self._claims)
