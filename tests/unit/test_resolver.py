"""Unit tests for prompt extraction and token resolution."""

from __future__ import annotations

from mjclient.correlation.registry import CorrelationRegistry
from mjclient.correlation.resolver import extract_prompt, resolve_token
from mjclient.discord.events import Unsupported, decode_event
from tests.frames import created_frame, updated_frame


def _noop(event) -> None:
    pass


class TestExtractPrompt:
    """Tests for extract_prompt."""

    def test_marked_prompt(self) -> None:
        assert extract_prompt("**cat**, by artist") == "cat"

    def test_first_marked_run_wins(self) -> None:
        assert extract_prompt("**cat --seed 1** - <@1> **(fast)**") == "cat --seed 1"

    def test_no_markers_falls_back_to_content(self) -> None:
        assert extract_prompt("no markers here") == "no markers here"

    def test_empty(self) -> None:
        assert extract_prompt("") == ""
        assert extract_prompt(None) == ""


class TestResolveToken:
    """Tests for the three resolution strategies."""

    def test_created_with_nonce_returns_it(self, registry: CorrelationRegistry) -> None:
        registry.register("T", _noop)
        event = decode_event(created_frame("m1", "**cat** - (Waiting to start)", nonce="T"))

        assert resolve_token(event, registry) == "T"
        assert registry.token_for_message("m1") == "T"

    def test_completion_matches_once(self, registry: CorrelationRegistry) -> None:
        """Token-less completion resolves by prompt and consumes the placeholder."""
        registry.register("T", _noop)
        resolve_token(decode_event(created_frame("m1", "**cat** - <@1> (Waiting to start)", nonce="T")), registry)

        done = decode_event(created_frame("m2", "**cat** - <@1> (fast)", attachments=["https://cdn/a_h.png"]))
        assert resolve_token(done, registry) == "T"

        again = decode_event(created_frame("m3", "**cat** - <@1> (fast)", attachments=["https://cdn/a_h.png"]))
        assert resolve_token(again, registry) is None
        assert registry.pending_count == 0

    def test_completion_without_placeholder(self, registry: CorrelationRegistry) -> None:
        event = decode_event(created_frame("m2", "**dog** - <@1>"))

        assert resolve_token(event, registry) is None

    def test_update_does_not_consume(self, registry: CorrelationRegistry) -> None:
        """Several progress updates resolve to the same token."""
        registry.register("T", _noop)
        resolve_token(decode_event(created_frame("m1", "**cat**", nonce="T")), registry)

        for pct in (15, 46, 93):
            update = decode_event(updated_frame("m1", f"**cat** ({pct}%)"))
            assert resolve_token(update, registry) == "T"

        assert registry.pending_count == 1

    def test_update_for_unknown_message(self, registry: CorrelationRegistry) -> None:
        event = decode_event(updated_frame("m9", "**cat** (50%)"))

        assert resolve_token(event, registry) is None

    def test_late_update_after_completion(self, registry: CorrelationRegistry) -> None:
        registry.register("T", _noop)
        resolve_token(decode_event(created_frame("m1", "**cat**", nonce="T")), registry)
        resolve_token(decode_event(created_frame("m2", "**cat** done")), registry)

        assert resolve_token(decode_event(updated_frame("m1", "**cat** (100%)")), registry) is None

    def test_foreign_nonce_leaves_no_placeholder(self, registry: CorrelationRegistry) -> None:
        """Other clients' commands on the channel cannot steal completions."""
        event = decode_event(created_frame("m1", "**cat**", nonce="someone-else"))

        assert resolve_token(event, registry) == "someone-else"
        assert registry.pending_count == 0

    def test_identical_prompts_first_registered_wins(self, registry: CorrelationRegistry) -> None:
        registry.register("A", _noop)
        registry.register("B", _noop)
        resolve_token(decode_event(created_frame("m1", "**cat**", nonce="A")), registry)
        resolve_token(decode_event(created_frame("m2", "**cat**", nonce="B")), registry)

        assert resolve_token(decode_event(created_frame("m3", "**cat**")), registry) == "A"
        assert resolve_token(decode_event(created_frame("m4", "**cat**")), registry) == "B"

    def test_unsupported(self, registry: CorrelationRegistry) -> None:
        assert resolve_token(Unsupported(kind="READY"), registry) is None
