"""Tests for IntentClassifier: command path and LLM path."""

import json
import logging

import pytest
from unittest.mock import Mock

from assistant.router.classifier import IntentClassifier, RouteResult
from assistant.router.entities import EntityReference
from assistant.router.intents import IntentKind


@pytest.fixture
def llm():
    client = Mock()
    client.is_available = True
    return client


@pytest.fixture
def classifier(llm):
    return IntentClassifier(llm=llm)


class TestCommandPath:
    @pytest.mark.parametrize("message,kind", [
        ("/create-contact Jane Doe, jane@x.com", IntentKind.CREATE_CONTACT),
        ("/CREATE-DEAL Big Deal, $50000", IntentKind.CREATE_DEAL),
        ("  /show-pipelines", IntentKind.SHOW_PIPELINES),
        ("/generate-bundle notify Slack and Discord", IntentKind.GENERATE_BUNDLE),
    ])
    def test_registered_command_short_circuits(self, classifier, llm, message, kind):
        result = classifier.classify(message)
        assert result.intent.kind is kind
        assert result.confidence == 1.0
        llm.generate.assert_not_called()

    def test_command_works_without_llm(self):
        result = IntentClassifier(llm=None).classify("/show-deals")
        assert result.intent.kind is IntentKind.SHOW_DEALS

    def test_command_carries_entities_and_raw_message(self, classifier):
        entity = EntityReference(type="contact", id="c1", name="Jane")
        result = classifier.classify("/send-email @Jane", [entity])
        assert result.extracted_params["contactIds"] == ["c1"]
        assert result.raw_message == "/send-email @Jane"

    def test_unknown_command_falls_through_to_llm(self, classifier, llm):
        llm.generate.return_value = json.dumps({"intent": "show-deals", "confidence": 0.9})
        result = classifier.classify("/deals please")
        assert result.intent.kind is IntentKind.SHOW_DEALS
        llm.generate.assert_called_once()


class TestLLMPath:
    def test_confident_answer_is_accepted(self, classifier, llm):
        llm.generate.return_value = json.dumps({"intent": "query-deals", "confidence": 0.92})
        result = classifier.classify("show me deals above 10k")
        assert isinstance(result, RouteResult)
        assert result.intent.kind is IntentKind.QUERY_DEALS
        assert result.confidence == pytest.approx(0.92)
        assert result.raw_message == "show me deals above 10k"

    def test_prompt_enumerates_catalog(self, classifier, llm):
        llm.generate.return_value = "{}"
        classifier.classify("hello there")
        prompt = llm.generate.call_args[0][0]
        assert "- create-contact: Create a new contact in the CRM" in prompt
        assert 'User message: "hello there"' in prompt

    @pytest.mark.parametrize("confidence", [0.5, 0.3, 0.0])
    def test_low_confidence_rejected(self, classifier, llm, confidence):
        llm.generate.return_value = json.dumps({"intent": "show-deals", "confidence": confidence})
        assert classifier.classify("maybe deals?") is None

    def test_missing_confidence_uses_default(self, classifier, llm):
        llm.generate.return_value = '{"intent": "explain"}'
        result = classifier.classify("what is a pipeline")
        assert result.confidence == 0.8

    @pytest.mark.parametrize("answer", [
        '{"intent": "show-deals", "confidence": NaN}',
        '{"intent": "show-deals", "confidence": Infinity}',
        '{"intent": "show-deals", "confidence": -Infinity}',
        '{"intent": "show-deals", "confidence": "inf"}',
    ])
    def test_non_finite_confidence_treated_as_missing(self, classifier, llm, answer):
        llm.generate.return_value = answer
        result = classifier.classify("deals?")
        assert result.intent.kind is IntentKind.SHOW_DEALS
        assert result.confidence == 0.8

    def test_non_finite_confidence_never_beats_strict_threshold(self, llm):
        llm.generate.return_value = '{"intent": "show-deals", "confidence": NaN}'
        assert IntentClassifier(llm=llm, confidence_threshold=0.9).classify("deals?") is None

    @pytest.mark.parametrize("answer", [
        '{"intent": "none", "confidence": 0.99}',
        '{"intent": "delete-all", "confidence": 0.99}',
        '{"confidence": 0.99}',
        "I am not sure what you mean",
        "",
    ])
    def test_no_match_answers(self, classifier, llm, answer):
        llm.generate.return_value = answer
        assert classifier.classify("asdf") is None

    def test_fenced_answer_with_prose(self, classifier, llm):
        llm.generate.return_value = 'Here:\n```json\n{"intent": "research", "confidence": 0.75}\n```'
        assert classifier.classify("look into competitor pricing").intent.kind is IntentKind.RESEARCH

    def test_transport_failure_is_no_match(self, classifier, llm, caplog):
        llm.generate.side_effect = TimeoutError("deadline exceeded")
        with caplog.at_level(logging.WARNING, logger="assistant.router.classifier"):
            assert classifier.classify("show my deals") is None
        assert "Intent classification failed" in caplog.text

    def test_unavailable_llm_is_no_match(self):
        llm = Mock()
        llm.is_available = False
        assert IntentClassifier(llm=llm).classify("show my deals") is None
        llm.generate.assert_not_called()

    def test_empty_message(self, classifier, llm):
        assert classifier.classify("   ") is None
        llm.generate.assert_not_called()

    def test_custom_threshold(self, llm):
        llm.generate.return_value = json.dumps({"intent": "show-deals", "confidence": 0.6})
        strict = IntentClassifier(llm=llm, confidence_threshold=0.7)
        assert strict.threshold == 0.7
        assert strict.classify("deals") is None
