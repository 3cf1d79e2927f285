"""Tests for rule input validation."""

from __future__ import annotations

from vc_notify.services.validation import (
    is_snowflake,
    validate_create_input,
    validate_update_input,
)

from .conftest import GUILD, TEXT, USER, VOICE, make_create_input, make_update_input


def _codes(outcome) -> set[tuple[str, str]]:
    return {(v.field, v.code) for v in outcome.violations}


class TestSnowflake:
    def test_accepts_17_to_19_digits(self):
        assert is_snowflake("1" * 17)
        assert is_snowflake("1" * 19)

    def test_rejects_other_shapes(self):
        assert not is_snowflake("1" * 16)
        assert not is_snowflake("1" * 20)
        assert not is_snowflake("abc")
        assert not is_snowflake("")


class TestValidateCreateInput:
    def test_valid_input_is_normalized(self):
        outcome = validate_create_input(
            make_create_input(
                owner_id=f"  {GUILD} ",
                name="  Dev team  ",
                watched_channel_ids=[int(VOICE), f" {VOICE} "],
                target_user_ids=[int(USER)],
                destination_channel_id=f"{TEXT}\n",
            )
        )

        assert outcome.valid
        rule = outcome.normalized
        assert rule.owner_id == GUILD
        assert rule.name == "Dev team"
        assert rule.watched_channel_ids == frozenset({VOICE})
        assert rule.target_user_ids == frozenset({USER})
        assert rule.destination_channel_id == TEXT
        assert rule.enabled is True

    def test_collects_every_violation(self):
        outcome = validate_create_input(
            make_create_input(
                owner_id="guild",
                name="   ",
                watched_channel_ids=[],
                target_user_ids=["nope"],
                destination_channel_id=None,
            )
        )

        assert not outcome.valid
        assert outcome.normalized is None
        assert _codes(outcome) == {
            ("name", "INVALID_LENGTH"),
            ("watched_channel_ids", "INVALID_COUNT"),
            ("target_user_ids", "INVALID_ID"),
            ("destination_channel_id", "INVALID_ID"),
            ("owner_id", "INVALID_ID"),
        }

    def test_name_longer_than_50_rejected(self):
        outcome = validate_create_input(make_create_input(name="x" * 51))
        assert ("name", "INVALID_LENGTH") in _codes(outcome)

    def test_name_of_50_accepted(self):
        assert validate_create_input(make_create_input(name="x" * 50)).valid

    def test_more_than_ten_watched_channels_rejected(self):
        channels = [f"2000000000000000{i:02d}" for i in range(11)]
        outcome = validate_create_input(make_create_input(watched_channel_ids=channels))
        assert ("watched_channel_ids", "INVALID_COUNT") in _codes(outcome)

    def test_more_than_fifty_targets_rejected(self):
        users = [f"4000000000000000{i:02d}" for i in range(51)]
        outcome = validate_create_input(make_create_input(target_user_ids=users))
        assert _codes(outcome) == {("target_user_ids", "TOO_MANY_ITEMS")}

    def test_non_list_fields_rejected(self):
        outcome = validate_create_input(
            make_create_input(watched_channel_ids=VOICE, target_user_ids=None)
        )
        assert ("watched_channel_ids", "NOT_A_LIST") in _codes(outcome)
        assert ("target_user_ids", "NOT_A_LIST") in _codes(outcome)


class TestValidateUpdateInput:
    def test_owner_not_required(self):
        outcome = validate_update_input(make_update_input())
        assert outcome.valid
        assert outcome.normalized.name == "Renamed"

    def test_violations_reported(self):
        outcome = validate_update_input(make_update_input(destination_channel_id="x"))
        assert _codes(outcome) == {("destination_channel_id", "INVALID_ID")}
