"""Unit tests for ObservationContext."""

from shared_kernel.observability_context import ObservationContext


class TestObservationContext:
    """Tests for ObservationContext."""

    def test_as_dict_omits_none_values(self):
        """Only populated fields are included."""
        context = ObservationContext(run_id="20260101T000000000000Z")
        assert context.as_dict() == {"run_id": "20260101T000000000000Z"}

    def test_as_dict_includes_extra(self):
        """Extra metadata is merged into the dict."""
        context = ObservationContext(school_id=3, extra={"table": "students"})
        assert context.as_dict() == {"school_id": 3, "table": "students"}

    def test_with_namespace_returns_new_context(self):
        """with_namespace does not mutate the original."""
        context = ObservationContext(school_id=3)
        scoped = context.with_namespace("school_ws")

        assert scoped.namespace == "school_ws"
        assert context.namespace is None

    def test_with_extra_merges(self):
        """with_extra keeps existing extra keys."""
        context = ObservationContext(extra={"a": 1}).with_extra(b=2)
        assert context.extra == {"a": 1, "b": 2}
