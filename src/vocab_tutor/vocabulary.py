"""Vocabulary loading, auto-categorization and per-word accuracy bookkeeping."""
import csv
import io
import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

from vocab_tutor.models import BEGINNER, DIFFICULTIES

CONTENT_DIR = Path(__file__).parent / "content"

CATEGORIES = (
    "blockchain", "defi", "nft", "trading", "protocol", "consensus", "security", "governance",
)

MASTERY_THRESHOLD = 0.8
WEAK_THRESHOLD = 0.5
MIN_ATTEMPTS = 2

# Keyword mapping for auto-categorization
CATEGORY_KEYWORDS = {
    "blockchain": ["block", "ledger", "chain", "node", "hash", "transaction", "gas", "wallet"],
    "defi": ["liquidity", "yield", "lending", "borrow", "amm", "swap", "pool", "collateral", "stablecoin", "tvl"],
    "nft": ["nft", "non-fungible", "mint", "collectible", "erc-721", "royalt"],
    "trading": ["order", "slippage", "spread", "market maker", "leverage", "long", "short", "arbitrage"],
    "protocol": ["protocol", "layer 2", "rollup", "bridge", "oracle", "smart contract", "evm"],
    "consensus": ["consensus", "proof of stake", "proof of work", "validator", "staking", "finality", "miner"],
    "security": ["exploit", "audit", "reentrancy", "rug pull", "phishing", "private key", "multisig"],
    "governance": ["dao", "governance", "proposal", "vote", "voting", "treasury", "delegate"],
}


@dataclass
class VocabularyEntry:
    id: str
    word: str
    definition: str
    category: str
    difficulty: str = BEGINNER
    pronunciation: str = ""
    audio_url: Optional[str] = None
    examples: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)


def categorize_content(text: str) -> Optional[str]:
    """Pick a category by keyword matching. Returns None when nothing matches."""
    text_lower = text.lower()
    scores = {}
    for category, keywords in CATEGORY_KEYWORDS.items():
        scores[category] = sum(1 for kw in keywords if kw in text_lower)
    best = max(scores, key=scores.get)
    return best if scores[best] > 0 else None


def read_entries(file_path: str) -> list[dict]:
    path = Path(file_path)
    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        import yaml
        data = yaml.safe_load(path.read_text())
    else:
        data = json.loads(path.read_text())
    if isinstance(data, dict):
        data = data.get("vocabulary", [])
    return list(data or [])


def entry_from_dict(d: dict) -> VocabularyEntry:
    category = d.get("category")
    if category not in CATEGORIES:
        text = " ".join([d["word"], d.get("definition", "")] + list(d.get("examples", [])))
        category = categorize_content(text) or "blockchain"
    difficulty = d.get("difficulty", BEGINNER)
    if difficulty not in DIFFICULTIES:
        difficulty = BEGINNER
    return VocabularyEntry(
        id=str(d.get("id") or d["word"].lower().replace(" ", "_")),
        word=d["word"],
        definition=d.get("definition", ""),
        category=category,
        difficulty=difficulty,
        pronunciation=d.get("pronunciation", ""),
        audio_url=d.get("audio_url"),
        examples=list(d.get("examples", [])),
        tags=list(d.get("tags", [])),
    )


def load_vocabulary(file_path: str) -> list[VocabularyEntry]:
    """Load vocabulary entries from a .json, .yaml or .yml file."""
    return [entry_from_dict(d) for d in read_entries(file_path)]


def load_default_vocabulary() -> list[VocabularyEntry]:
    return load_vocabulary(str(CONTENT_DIR / "vocabulary.json"))


def update_word_accuracy(study_count: int, accuracy: float, is_correct: bool) -> tuple[int, float]:
    """Running accuracy that behaves like a mean over the last 10 attempts."""
    study_count += 1
    weight = 1 / min(study_count, 10)
    accuracy = accuracy * (1 - weight) + (1.0 if is_correct else 0.0) * weight
    return study_count, round(accuracy, 4)


def classify_words(word_stats: dict[str, tuple[int, float]]) -> tuple[set[str], set[str]]:
    """Split words into (mastered, weak) by their tracked accuracy.

    Words seen fewer than MIN_ATTEMPTS times are in neither set.
    """
    seen = {w: acc for w, (count, acc) in word_stats.items() if count >= MIN_ATTEMPTS}
    mastered = {w for w, acc in seen.items() if acc >= MASTERY_THRESHOLD}
    weak = {w for w, acc in seen.items() if acc < WEAK_THRESHOLD}
    return mastered, weak


def search_vocabulary(entries: list[VocabularyEntry], keyword: str = "", categories=None,
                      difficulties=None, tags=None) -> list[VocabularyEntry]:
    """Filter entries by keyword (word, definition or tag) and by category, difficulty and tag."""
    results = list(entries)
    keyword = keyword.strip().lower()
    if keyword:
        results = [
            e for e in results
            if keyword in e.word.lower() or keyword in e.definition.lower()
            or any(keyword in t.lower() for t in e.tags)
        ]
    if categories:
        results = [e for e in results if e.category in categories]
    if difficulties:
        results = [e for e in results if e.difficulty in difficulties]
    if tags:
        results = [e for e in results if any(t in e.tags for t in tags)]
    return results


def vocabulary_stats(entries: list[VocabularyEntry], word_stats: dict[str, tuple[int, float]]) -> dict:
    """Counts of mastered, learning and not-started entries, plus totals per category and difficulty."""
    stats = {"total": len(entries), "mastered": 0, "learning": 0, "not_started": 0,
             "by_category": {}, "by_difficulty": {}}
    for entry in entries:
        count, accuracy = word_stats.get(entry.id, (0, 0.0))
        if count == 0:
            stats["not_started"] += 1
        elif count >= MIN_ATTEMPTS and accuracy >= MASTERY_THRESHOLD:
            stats["mastered"] += 1
        else:
            stats["learning"] += 1
        stats["by_category"][entry.category] = stats["by_category"].get(entry.category, 0) + 1
        stats["by_difficulty"][entry.difficulty] = stats["by_difficulty"].get(entry.difficulty, 0) + 1
    return stats


EXPORT_FIELDS = [
    "id", "word", "definition", "pronunciation", "category", "difficulty", "tags", "examples",
    "audio_url", "study_count", "accuracy",
]


def export_vocabulary(entries: list[VocabularyEntry], fmt: str = "json",
                      word_stats: Optional[dict[str, tuple[int, float]]] = None) -> str:
    """Serialize entries with their study count and accuracy as JSON or CSV."""
    word_stats = word_stats or {}
    records = []
    for entry in entries:
        count, accuracy = word_stats.get(entry.id, (0, 0.0))
        records.append({**asdict(entry), "study_count": count, "accuracy": accuracy})
    if fmt == "json":
        return json.dumps({"vocabulary": records}, ensure_ascii=False, indent=2)
    elif fmt == "csv":
        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=EXPORT_FIELDS, extrasaction="ignore")
        writer.writeheader()
        for record in records:
            writer.writerow({
                **record,
                "tags": ", ".join(record["tags"]),
                "examples": "; ".join(record["examples"]),
                "audio_url": record["audio_url"] or "",
            })
        return output.getvalue()
    raise ValueError(f"Unsupported export format: {fmt}")
