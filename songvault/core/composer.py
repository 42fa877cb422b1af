"""
Text composition for embeddings.

compose_text() produces the only text the embedding model ever sees for a
song. Its ordering is part of the stored data format: changing it changes
every future embedding, so bump COMPOSITION_VERSION and re-embed the corpus
if it ever changes.
"""

from typing import Dict, List, Optional

COMPOSITION_VERSION = 1


def _values(mapping: Optional[Dict[str, str]]) -> List[str]:
    if not mapping:
        return []
    return list(mapping.values())


def compose_text(metadata) -> str:
    """Join summary, keywords, moods and themes with single spaces.

    Order is fixed: summary, then the values of keywords, moods and themes in
    each mapping's iteration order. A missing mapping contributes nothing.
    """
    parts = [metadata.summary]
    parts.extend(_values(metadata.keywords))
    parts.extend(_values(metadata.moods))
    parts.extend(_values(metadata.themes))
    return " ".join(parts)
