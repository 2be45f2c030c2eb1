"""
Localization Resolver
=====================

Looks up translated strings in a loaded bundle. Messages are namespaced by
``columns``, ``common`` and ``cards.<id>``; template keys of the form
``card.<field>`` are rewritten to the current card's namespace.
"""

from typing import Any, Mapping, Optional

from cardpress.models.schemas import LocalizationBundle

CARD_NAMESPACE = "card"
CARDS_NAMESPACE = "cards"


def normalize_key(key: str, card_id: Optional[str]) -> str:
    """Rewrite ``card.<rest>`` to ``cards.<card_id>.<rest>``; other keys pass through."""
    namespace, _, remainder = key.partition(".")
    if namespace == CARD_NAMESPACE and remainder and card_id:
        return f"{CARDS_NAMESPACE}.{card_id}.{remainder}"
    return key


def lookup(messages: Mapping[str, Any], key: str) -> Optional[str]:
    """Walk a nested message map one dot segment at a time."""
    current: Any = messages
    for segment in key.split("."):
        if not segment or not isinstance(current, Mapping):
            return None
        current = current.get(segment)
    return current if isinstance(current, str) else None


class LocalizationResolver:
    """Resolves localization keys against one bundle, or against nothing."""

    def __init__(self, bundle: Optional[LocalizationBundle]) -> None:
        self.bundle = bundle

    @property
    def locale(self) -> Optional[str]:
        return self.bundle.locale if self.bundle else None

    def resolve(self, key: str, card_id: Optional[str] = None) -> Optional[str]:
        """
        Resolve a localization key.

        Args:
            key: Dotted key as written in the template
            card_id: Identifier of the card being rendered

        Returns:
            The translated string, or None when any segment is missing
        """
        if self.bundle is None:
            return None
        card_id = card_id.strip() if card_id else None
        return lookup(self.bundle.messages, normalize_key(key.strip(), card_id))
