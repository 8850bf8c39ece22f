"""Import flashcard decks from JSON, YAML or plain-text files."""
import json
import logging
from pathlib import Path

from study_srs.flashcards import create_flashcard

logger = logging.getLogger(__name__)

TEXT_SEPARATOR = "::"


def _parse_text(text: str) -> list[dict]:
    entries = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        question, sep, answer = line.partition(TEXT_SEPARATOR)
        entries.append({"question": question.strip(), "answer": answer.strip() if sep else ""})
    return entries


def _unwrap(data) -> list:
    if isinstance(data, dict):
        data = data.get("flashcards", [])
    return data if isinstance(data, list) else []


def read_deck(file_path: str) -> list[dict]:
    """Read raw card entries from a deck file, keyed by its extension."""
    path = Path(file_path)
    suffix = path.suffix.lower()

    if suffix == ".json":
        return _unwrap(json.loads(path.read_text()))
    elif suffix in (".yaml", ".yml"):
        import yaml
        return _unwrap(yaml.safe_load(path.read_text()))
    elif suffix in (".txt", ".md"):
        return _parse_text(path.read_text())
    raise ValueError(f"Unsupported deck format: {suffix or path.name}")


def _card_fields(entry) -> tuple[str, str, list[str]] | None:
    if not isinstance(entry, dict):
        return None
    question = str(entry.get("question") or entry.get("front") or "").strip()
    answer = str(entry.get("answer") or entry.get("back") or "").strip()
    if not question or not answer:
        return None
    tags = entry.get("tags") or []
    if isinstance(tags, str):
        tags = [tags]
    return question, answer, [str(t) for t in tags]


def import_deck(db_path: str, file_path: str, now=None) -> dict:
    """Create a card for every valid entry. Entries without both sides are skipped."""
    imported = skipped = 0
    for entry in read_deck(file_path):
        fields = _card_fields(entry)
        if fields is None:
            skipped += 1
            continue
        question, answer, tags = fields
        create_flashcard(db_path, question, answer, tags=tags, now=now)
        imported += 1
    if skipped:
        logger.warning("Skipped %d incomplete entries in %s", skipped, file_path)
    return {"filename": Path(file_path).name, "imported": imported, "skipped": skipped}
