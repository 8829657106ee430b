"""Unit tests for sequence resynchronization."""

from unittest.mock import MagicMock

from psycopg2 import errors

from migration.infrastructure.sequences import SequenceResynchronizer, build_resync_statement
from shared_kernel.identifiers import SafeIdentifier

WS = SafeIdentifier("school_ws")


def setval_returns(value):
    """Responder answering every setval with ``value``."""

    def responder(statement, params):
        if "setval" in statement:
            return [(value,)]
        return None

    return responder


class TestBuildResyncStatement:
    """Tests for the setval statement."""

    def test_next_value_is_max_plus_one(self, sql_text):
        """The sequence moves to max(id) + 1 with is_called false."""
        statement, params = build_resync_statement(WS, SafeIdentifier("students"))

        assert sql_text(statement) == (
            "SELECT setval(pg_get_serial_sequence(%s, %s), "
            'COALESCE((SELECT MAX("id") FROM "school_ws"."students"), 0) + 1, false)'
        )
        assert params == ('"school_ws"."students"', "id")


class TestSequenceResynchronizer:
    """Tests for resync()."""

    def test_resyncs_each_table(self, recording_cursor):
        """Every listed table gets its own setval."""
        cursor = recording_cursor(setval_returns(10))

        moved = SequenceResynchronizer(cursor, probe=MagicMock()).resync(
            WS, ["students", "teachers"]
        )

        assert moved == 2
        assert len(cursor.executed("setval")) == 2

    def test_table_without_sequence_is_skipped(self, recording_cursor):
        """A failing table is skipped and the rest still run."""

        def responder(statement, params):
            if "setval" in statement and "timetables" in statement:
                return errors.UndefinedTable('relation "school_ws.timetables" does not exist')
            return setval_returns(10)(statement, params)

        probe = MagicMock()
        cursor = recording_cursor(responder)

        moved = SequenceResynchronizer(cursor, probe=probe).resync(
            WS, ["timetables", "students"]
        )

        assert moved == 1
        probe.sequence_resync_skipped.assert_called_once()
        probe.sequence_resynced.assert_called_once_with("school_ws", "students")

    def test_null_setval_is_not_counted(self, recording_cursor):
        """A table with no owned sequence makes setval return NULL; it is skipped."""

        def responder(statement, params):
            if "setval" in statement and "timetables" in statement:
                return [(None,)]
            return setval_returns(4)(statement, params)

        probe = MagicMock()
        cursor = recording_cursor(responder)

        moved = SequenceResynchronizer(cursor, probe=probe).resync(
            WS, ["timetables", "students"]
        )

        assert moved == 1
        probe.sequence_resync_skipped.assert_called_once_with(
            "school_ws", "timetables", "no sequence owned by id"
        )
        probe.sequence_resynced.assert_called_once_with("school_ws", "students")
