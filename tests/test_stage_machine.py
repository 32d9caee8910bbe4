"""Tests for spark_voice.stage_machine — turn handling across a whole call."""
import pytest
from spark_voice.prompts import GREETING, NO_INPUT_REPROMPT, ask_prompt, reprompt
from spark_voice.sanitize import GBP_CLARIFICATION
from spark_voice.session_store import InMemorySessionStore
from spark_voice.stage_machine import StageMachine
from spark_voice.stages import Stage, Outcome


def run_turns(machine, call_id, *utterances):
    return [machine.handle_turn(call_id, text) for text in utterances]


# ── End-to-end scenarios ───────────────────────────────────────────────

class TestCategoryScenarios:
    def test_flat_is_domestic(self, machine, store):
        result = machine.handle_turn("CA1", "I need someone for my flat")

        session = store.get("CA1")
        assert result.stage == Stage.NEED_SERVICE_TYPE
        assert result.outcome == Outcome.ACCEPTED
        assert session.collected_data["service_category"] == "domestic"
        assert result.prompt == ask_prompt("need_service_type", "domestic")

    def test_office_and_house_is_ambiguous(self, machine, store):
        result = machine.handle_turn("CA2", "it's for my office and my house")

        assert result.stage == Stage.NEED_CATEGORY
        assert result.outcome == Outcome.REJECTED
        assert result.prompt == reprompt("need_category")
        assert "service_category" not in store.get("CA2").collected_data

    def test_ambiguity_never_advances(self, machine, store):
        for _ in range(10):
            result = machine.handle_turn("CA3", "it's for my office and my house")
            assert result.stage == Stage.NEED_CATEGORY
        assert store.get("CA3").collected_data == {}
        assert len(store.get("CA3").transcript) == 10

    def test_caller_currency_is_not_refused(self, machine, store):
        result = machine.handle_turn("CA4", "that'll be 50 dollars right?")

        session = store.get("CA4")
        assert result.stage == Stage.NEED_CATEGORY
        assert result.prompt == reprompt("need_category")
        assert result.prompt != GBP_CLARIFICATION
        assert session.transcript == ["that'll be 50 dollars right?"]

    def test_two_empty_turns_same_generic_reprompt(self, machine, store):
        first, second = run_turns(machine, "CA5", "", "")

        assert first.prompt == second.prompt == NO_INPUT_REPROMPT
        assert first.stage == second.stage == Stage.NEED_CATEGORY
        assert first.outcome == Outcome.NO_INPUT


class TestCommercialPath:
    def test_commercial_path_to_property(self, machine, store):
        category, service, job = run_turns(machine, "CA10", "office", "deep clean", "just a one-off")

        data = store.get("CA10").collected_data
        assert category.stage == Stage.NEED_SERVICE_TYPE
        assert data["service_category"] == "commercial"
        assert category.prompt == ask_prompt("need_service_type", "commercial")

        assert service.stage == Stage.NEED_JOB_TYPE
        assert data["commercial_service_type"] == "deep_clean"

        assert job.stage == Stage.NEED_PROPERTY_AND_POSTCODE
        assert data["job_type"] == "one_time"
        assert job.prompt == "Thanks. What is the property type and the postcode?"

    def test_commercial_path_completes(self, machine, store):
        results = run_turns(
            machine, "CA11",
            "office", "deep clean", "weekly", "an office in EC1A 1BB", "two toilets and a kitchen",
        )

        final = results[-1]
        data = store.get("CA11").collected_data
        assert final.stage == Stage.COMPLETE
        assert final.completed is True
        assert data["postcode"] == "EC1A 1BB"
        assert data["commercial_property_type"] == "office"
        assert data["toilets"] == 2
        assert data["kitchens"] == 1
        assert not any(r.completed for r in results[:-1])


class TestDomesticPath:
    def test_domestic_skips_job_type(self, machine, store):
        _, service = run_turns(machine, "CA20", "my house", "end of tenancy please")

        assert service.stage == Stage.NEED_PROPERTY_AND_POSTCODE
        assert store.get("CA20").collected_data["domestic_service_type"] == "end_of_tenancy"
        assert "job_type" not in store.get("CA20").collected_data

    def test_domestic_path_completes(self, machine, store):
        results = run_turns(
            machine, "CA21",
            "a flat", "deep clean", "a flat in SW1A 1AA", "three bedrooms and two bathrooms",
        )

        assert results[-1].stage == Stage.COMPLETE
        assert results[-1].completed is True
        assert results[-1].prompt == ask_prompt("complete")
        data = store.get("CA21").collected_data
        assert data["bedrooms"] == 3
        assert data["bathrooms"] == 2
        assert data["domestic_property_type"] == "flat"

    def test_stage_reprompts_are_stage_specific(self, machine):
        run_turns(machine, "CA22", "my home")
        result = machine.handle_turn("CA22", "not sure really")

        assert result.stage == Stage.NEED_SERVICE_TYPE
        assert result.prompt == reprompt("need_service_type", "domestic")


class TestCompletion:
    def test_completed_fires_once(self, machine, store):
        run_turns(machine, "CA30", "home", "deep clean", "SW1A 1AA", "two bedrooms")

        later = run_turns(machine, "CA30", "thanks, bye", "", "one more thing")
        assert all(r.stage == Stage.COMPLETE for r in later)
        assert not any(r.completed for r in later)
        assert store.get("CA30").handed_off is True

    def test_turns_after_completion_are_transcribed(self, machine, store):
        run_turns(machine, "CA31", "home", "deep clean", "SW1A 1AA", "two bedrooms")
        result = machine.handle_turn("CA31", "can you do mornings")

        assert result.prompt == reprompt("complete")
        assert store.get("CA31").transcript[-1] == "can you do mornings"


# ── Invariants ─────────────────────────────────────────────────────────

class TestInvariants:
    UTTERANCES = [
        "", "um", "office and house", "home", "", "what?", "deep clean and regular",
        "deep clean", "it's a house in m1 1ae", "", "lots", "three bedrooms", "bye", "",
    ]

    def test_stage_never_moves_backwards(self, machine):
        last = -1
        for text in self.UTTERANCES:
            result = machine.handle_turn("CA40", text)
            assert result.stage.order >= last
            last = result.stage.order

    @pytest.mark.parametrize("empty", ["", "   ", None])
    def test_empty_turn_changes_nothing(self, machine, store, empty):
        machine.handle_turn("CA41", "home")
        before_data = dict(store.get("CA41").collected_data)
        before_transcript = list(store.get("CA41").transcript)

        result = machine.handle_turn("CA41", empty)

        assert result.outcome == Outcome.NO_INPUT
        assert store.get("CA41").collected_data == before_data
        assert store.get("CA41").transcript == before_transcript

    def test_transcript_grows_by_raw_input(self, machine, store):
        for i, text in enumerate(["  My Office ", "DEEP clean", "gibberish"], start=1):
            machine.handle_turn("CA42", text)
            assert len(store.get("CA42").transcript) == i
        assert store.get("CA42").transcript[0] == "My Office"
        assert store.get("CA42").transcript[1] == "DEEP clean"

    def test_input_is_matched_case_insensitively(self, machine, store):
        machine.handle_turn("CA43", "MY OFFICE")
        assert store.get("CA43").collected_data["service_category"] == "commercial"


# ── Configuration points ───────────────────────────────────────────────

class TestSessionCreation:
    def test_auto_create_processes_first_input(self, machine, store):
        result = machine.handle_turn("CA50", "office")
        assert "CA50" in store
        assert result.stage == Stage.NEED_SERVICE_TYPE

    def test_without_auto_create_first_input_starts_call(self):
        store = InMemorySessionStore()
        machine = StageMachine(store, auto_create=False)

        result = machine.handle_turn("CA51", "office")

        assert result.prompt == GREETING
        assert result.stage == Stage.NEED_CATEGORY
        assert result.outcome == Outcome.REJECTED
        assert store.get("CA51").transcript == ["office"]
        assert store.get("CA51").collected_data == {}

        second = machine.handle_turn("CA51", "office")
        assert second.stage == Stage.NEED_SERVICE_TYPE
        assert store.get("CA51").transcript == ["office", "office"]

    def test_without_auto_create_silent_first_turn_starts_call(self):
        store = InMemorySessionStore()
        machine = StageMachine(store, auto_create=False)

        result = machine.handle_turn("CA53", "")

        assert result.prompt == GREETING
        assert result.outcome == Outcome.NO_INPUT
        assert store.get("CA53").transcript == []

    def test_start_call_resets_session(self, machine, store):
        machine.handle_turn("CA52", "office")
        greeting = machine.start_call("CA52")

        assert greeting == GREETING
        assert store.get("CA52").stage == Stage.NEED_CATEGORY
        assert store.get("CA52").collected_data == {}


class TestPluggableRules:
    def test_custom_rule_replaces_keyword_matching(self, store):
        rules = {"need_category": lambda text, data: {"service_category": "commercial"} if "x" in text else None}
        machine = StageMachine(store, rules=rules)

        assert machine.handle_turn("CA60", "nothing").stage == Stage.NEED_CATEGORY
        assert machine.handle_turn("CA60", "X marks it").stage == Stage.NEED_SERVICE_TYPE

    def test_rule_receives_lowercased_text_and_copy_of_data(self, store):
        seen = {}

        def rule(text, data):
            seen["text"] = text
            data["tampered"] = True
            return None

        machine = StageMachine(store, rules={"need_category": rule})
        machine.handle_turn("CA61", "Hello THERE")

        assert seen["text"] == "hello there"
        assert "tampered" not in store.get("CA61").collected_data
