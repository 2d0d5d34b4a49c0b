"""
Rule-based intent classification and entity extraction.

The classifier scans an ordered table of (pattern, category) rows and returns
the first hit; confidence is fixed per category. The extractor runs a set of
independent patterns over the original (not case-folded) text, since
capitalization is what marks a customer name.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Optional, Pattern, Sequence, Tuple

from ops_assistant.models import EntityMap, IntentCategory, IntentClassification

logger = logging.getLogger(__name__)

CATEGORY_CONFIDENCE: Dict[IntentCategory, float] = {
    IntentCategory.SCHEDULE_VIEW: 0.9,
    IntentCategory.BOOKING_MANAGEMENT: 0.85,
    IntentCategory.TIME_BLOCKING: 0.8,
    IntentCategory.GENERAL_QUERY: 0.5,
}

CATEGORY_ACTIONS: Dict[IntentCategory, str] = {
    IntentCategory.SCHEDULE_VIEW: "view_schedule",
    IntentCategory.BOOKING_MANAGEMENT: "manage_booking",
    IntentCategory.TIME_BLOCKING: "block_time",
    IntentCategory.GENERAL_QUERY: "respond",
}


@dataclass(frozen=True)
class IntentRule:
    pattern: Pattern[str]
    category: IntentCategory

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


def _rules(category: IntentCategory, *patterns: str) -> Tuple[IntentRule, ...]:
    return tuple(IntentRule(re.compile(p, re.IGNORECASE), category) for p in patterns)


# Scanned top to bottom, first match wins
INTENT_RULES: Tuple[IntentRule, ...] = (
    _rules(
        IntentCategory.SCHEDULE_VIEW,
        r"what'?s?\s+(my|the)\s+schedule\s+(today|tomorrow|this\s+week)?",
        r"show\s+(me\s+)?(my\s+)?(schedule|calendar|appointments)",
        r"do\s+i\s+have\s+(any\s+)?(appointments|bookings)",
        r"(daily|weekly|monthly)\s+(briefing|overview|schedule)",
        r"how\s+many\s+appointments",
        r"view\s+(my\s+)?(schedule|calendar)",
        r"day\s+at\s+a\s+glance",
        r"(today|tomorrow)'?s?\s+(overview|summary|agenda)",
    )
    + _rules(
        IntentCategory.BOOKING_MANAGEMENT,
        r"book\s+(.+?)\s+for\s+(.+?)\s+at\s+(.+)",
        r"schedule\s+(.+?)\s+for\s+(.+)",
        r"add\s+(an?\s+)?appointment",
        r"move\s+(.+?)'?s\s+appointment",
        r"cancel\s+(.+?)'?s\s+appointment",
        r"reschedule",
        r"create\s+(an?\s+)?appointment",
    )
    + _rules(
        IntentCategory.TIME_BLOCKING,
        r"block\s+(out\s+)?(.+?)\s+for",
        r"set\s+vacation\s+mode",
        r"mark\s+(.+?)\s+as\s+(busy|unavailable)",
        r"(lunch|break|buffer)\s+time",
        r"block\s+(today|tomorrow|next\s+\w+)",
    )
)

# Checked in order; the first hit sets dateContext/dateValue
DATE_PATTERNS: Sequence[Tuple[str, Pattern[str]]] = (
    ("today", re.compile(r"today", re.IGNORECASE)),
    ("tomorrow", re.compile(r"tomorrow", re.IGNORECASE)),
    ("thisWeek", re.compile(r"this\s+week", re.IGNORECASE)),
    ("nextWeek", re.compile(r"next\s+week", re.IGNORECASE)),
    ("specific", re.compile(r"(\d{1,2}/\d{1,2}/?\d{0,4})|(\w+\s+\d{1,2})", re.IGNORECASE)),
)

TIME_PATTERN = re.compile(r"(\d{1,2}):?(\d{2})?\s*(am|pm)?", re.IGNORECASE)
# Marker words are case-insensitive, the name itself must be capitalized
NAME_PATTERN = re.compile(r"\b(?i:for|with|book|schedule)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)")
SERVICE_PATTERN = re.compile(r"(?:for|book|schedule)\s+(.+?)\s+(?:at|on|service|for)", re.IGNORECASE)
VIEW_PATTERN = re.compile(r"\b(daily|weekly|monthly)\b", re.IGNORECASE)
REASON_PATTERN = re.compile(r"\b(?:block|mark)\b.*?\bfor\s+(.+?)[.!?]*$", re.IGNORECASE)


def normalize_utterance(text: Optional[str]) -> str:
    """Trim and collapse runs of whitespace"""
    return " ".join((text or "").split())


def extract_entities(text: str) -> EntityMap:
    """
    Extract structured entities from an utterance.

    Every rule is optional and applied independently; a field is left unset
    when its pattern does not occur.
    """
    text = (text or "").strip()
    entities: Dict[str, str] = {}

    for context, pattern in DATE_PATTERNS:
        match = pattern.search(text)
        if match:
            entities["date_context"] = context
            entities["date_value"] = match.group(0)
            break

    time_match = TIME_PATTERN.search(text)
    if time_match:
        entities["time"] = time_match.group(0).strip()
        entities["time_value"] = entities["time"]

    name_match = NAME_PATTERN.search(text)
    if name_match:
        entities["customer"] = name_match.group(1)

    service_match = SERVICE_PATTERN.search(text)
    if service_match and service_match.group(1).strip():
        entities["service"] = service_match.group(1).strip()

    view_match = VIEW_PATTERN.search(text)
    if view_match:
        entities["view"] = view_match.group(1).lower()

    reason_match = REASON_PATTERN.search(text)
    if reason_match and reason_match.group(1).strip():
        entities["reason"] = reason_match.group(1).strip()

    return EntityMap(**entities)


def match_category(text: str) -> IntentCategory:
    """Return the category of the first matching rule, GENERAL_QUERY otherwise"""
    normalized = normalize_utterance(text).lower()
    for rule in INTENT_RULES:
        if rule.matches(normalized):
            return rule.category
    return IntentCategory.GENERAL_QUERY


def classify_intent(text: str) -> IntentClassification:
    """Classify an utterance and attach the entities found in it"""
    category = match_category(text)

    if category is IntentCategory.GENERAL_QUERY:
        entities = EntityMap()
    else:
        entities = extract_entities(text)

    return IntentClassification(
        category=category,
        action=CATEGORY_ACTIONS[category],
        confidence=CATEGORY_CONFIDENCE[category],
        entities=entities,
    )
