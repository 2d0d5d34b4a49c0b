import pytest
from ops_assistant.adapters.intent_extractor import (
    CATEGORY_CONFIDENCE,
    INTENT_RULES,
    classify_intent,
    extract_entities,
    match_category,
    normalize_utterance,
)
from ops_assistant.models import EntityMap, IntentCategory


class TestClassifyIntent:
    """Unit tests for the rule-based intent classifier"""

    def test_schedule_view(self):
        """Test schedule questions classify as SCHEDULE_VIEW"""
        result = classify_intent("What's my schedule today?")
        assert result.category == IntentCategory.SCHEDULE_VIEW
        assert result.confidence == 0.9
        assert result.action == "view_schedule"

    def test_booking_management(self):
        """Test booking requests classify as BOOKING_MANAGEMENT"""
        result = classify_intent("book Jane Smith for haircut at 3pm")
        assert result.category == IntentCategory.BOOKING_MANAGEMENT
        assert result.confidence == 0.85
        assert result.action == "manage_booking"

    def test_time_blocking(self):
        """Test blocking requests classify as TIME_BLOCKING"""
        result = classify_intent("block out Friday for vacation")
        assert result.category == IntentCategory.TIME_BLOCKING
        assert result.confidence == 0.8
        assert result.action == "block_time"

    def test_general_query_fallback(self):
        """Test unmatched input falls back to GENERAL_QUERY with no entities"""
        result = classify_intent("hello there")
        assert result.category == IntentCategory.GENERAL_QUERY
        assert result.confidence == 0.5
        assert result.action == "respond"
        assert result.entities == EntityMap()
        assert result.entities.to_payload() == {}

    def test_general_query_ignores_entities(self):
        """Test GENERAL_QUERY never carries entities even when some are present"""
        result = classify_intent("hello, today is a nice day at 5pm")
        assert result.category == IntentCategory.GENERAL_QUERY
        assert result.entities.to_payload() == {}

    def test_deterministic(self):
        """Test identical input always yields an identical result"""
        inputs = [
            "What's my schedule today?",
            "book Jane Smith for haircut at 3pm",
            "block out Friday for vacation",
            "hello there",
            "",
        ]
        for text in inputs:
            assert classify_intent(text) == classify_intent(text)

    def test_case_and_whitespace_insensitive(self):
        """Test matching uses the trimmed, case-folded utterance"""
        assert match_category("   SHOW ME MY CALENDAR  ") == IntentCategory.SCHEDULE_VIEW
        assert match_category("ReSchedule") == IntentCategory.BOOKING_MANAGEMENT
        assert match_category("what's\n my \t schedule") == IntentCategory.SCHEDULE_VIEW

    def test_schedule_view_phrases(self):
        """Test the schedule view rule group"""
        phrases = [
            "show me my appointments",
            "Do I have any bookings?",
            "give me the weekly overview",
            "how many appointments do I have",
            "view my calendar",
            "my day at a glance",
            "tomorrow's agenda",
        ]
        for text in phrases:
            assert match_category(text) == IntentCategory.SCHEDULE_VIEW, text

    def test_booking_phrases(self):
        """Test the booking rule group"""
        phrases = [
            "add an appointment",
            "move Sam's appointment",
            "cancel Rex's appointment",
            "can you reschedule my 3pm",
            "create appointment",
            "schedule Max for grooming",
        ]
        for text in phrases:
            assert match_category(text) == IntentCategory.BOOKING_MANAGEMENT, text

    def test_time_blocking_phrases(self):
        """Test the time blocking rule group"""
        phrases = [
            "set vacation mode",
            "mark Tuesday as unavailable",
            "I need lunch time",
            "block tomorrow",
            "block next monday",
        ]
        for text in phrases:
            assert match_category(text) == IntentCategory.TIME_BLOCKING, text

    def test_first_group_wins(self):
        """Test higher priority groups win when several groups match"""
        # Matches both a schedule view rule and the reschedule rule
        result = classify_intent("show my appointments so I can reschedule")
        assert result.category == IntentCategory.SCHEDULE_VIEW

        # Matches both a booking rule and a time blocking rule
        result = classify_intent("reschedule my lunch time")
        assert result.category == IntentCategory.BOOKING_MANAGEMENT

    def test_rule_table_is_ordered_by_priority(self):
        """Test the rule table lists groups in priority order"""
        priority = [
            IntentCategory.SCHEDULE_VIEW,
            IntentCategory.BOOKING_MANAGEMENT,
            IntentCategory.TIME_BLOCKING,
        ]
        ranks = [priority.index(rule.category) for rule in INTENT_RULES]
        assert ranks == sorted(ranks)
        assert IntentCategory.GENERAL_QUERY not in {rule.category for rule in INTENT_RULES}

    def test_confidence_is_constant_per_category(self):
        """Test confidence does not depend on the input"""
        short = classify_intent("reschedule")
        long = classify_intent("please reschedule every appointment I have next week for me")
        assert short.confidence == long.confidence == CATEGORY_CONFIDENCE[IntentCategory.BOOKING_MANAGEMENT]

    def test_entities_use_original_case(self):
        """Test the classifier extracts names from the non case-folded text"""
        result = classify_intent("Book Jane Smith for haircut at 3pm")
        assert result.entities.customer == "Jane Smith"
        assert result.entities.time == "3pm"


class TestExtractEntities:
    """Unit tests for entity extraction"""

    def test_full_booking_sentence(self):
        """Test date, time and customer extraction from a booking request"""
        entities = extract_entities("schedule John Doe for haircut tomorrow at 2:30pm")
        assert entities.date_context == "tomorrow"
        assert entities.date_value == "tomorrow"
        assert "2:30" in entities.time
        assert entities.time_value == entities.time
        assert "John Doe" in entities.customer

    def test_no_entities(self):
        """Test missing patterns leave every field unset"""
        entities = extract_entities("hello there")
        assert entities.to_payload() == {}

    def test_empty_input(self):
        """Test empty input is not an error"""
        assert extract_entities("").to_payload() == {}
        assert extract_entities(None).to_payload() == {}

    def test_date_context_order(self):
        """Test the first matching date rule wins"""
        assert extract_entities("today or tomorrow").date_context == "today"
        assert extract_entities("anything this week?").date_context == "thisWeek"
        assert extract_entities("show me next week").date_context == "nextWeek"

    def test_specific_date(self):
        """Test explicit date patterns"""
        entities = extract_entities("12/25 works for me")
        assert entities.date_context == "specific"
        assert entities.date_value == "12/25"

        entities = extract_entities("June 14 please")
        assert entities.date_context == "specific"
        assert entities.date_value == "June 14"

    def test_time_formats(self):
        """Test time token shapes"""
        assert extract_entities("see you at 9am").time == "9am"
        assert extract_entities("meet at 10:15").time == "10:15"
        assert extract_entities("around 4 pm").time == "4 pm"

    def test_customer_requires_capitalization(self):
        """Test lowercase words after a marker are not taken as a name"""
        assert extract_entities("book jane for nails").customer is None
        assert extract_entities("appointment with Sarah Connor").customer == "Sarah Connor"

    def test_service_between_markers(self):
        """Test service phrase extraction"""
        entities = extract_entities("book a haircut at 3pm")
        assert entities.service == "a haircut"
        assert entities.customer is None

    def test_service_takes_first_marker_phrase(self):
        """Test the service phrase runs from the first marker to the next one"""
        entities = extract_entities("book Jane Smith for haircut at 3pm")
        assert entities.customer == "Jane Smith"
        assert entities.service == "Jane Smith"
        assert entities.duration is None

    def test_view_and_reason(self):
        """Test view and reason extraction"""
        assert extract_entities("weekly overview").view == "weekly"
        assert extract_entities("block out Friday for vacation").reason == "vacation"
        assert extract_entities("mark Tuesday as busy").reason is None

    def test_payload_uses_wire_names(self):
        """Test to_payload keys match the webhook field names"""
        payload = extract_entities("schedule John Doe for haircut tomorrow at 2:30pm").to_payload()
        assert payload["dateContext"] == "tomorrow"
        assert payload["timeValue"] == payload["time"]
        assert "date_context" not in payload


class TestNormalizeUtterance:
    """Unit tests for utterance normalization"""

    @pytest.mark.parametrize("raw,expected", [
        ("  hello   there ", "hello there"),
        ("\tline\nbreak", "line break"),
        ("   ", ""),
        (None, ""),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_utterance(raw) == expected
