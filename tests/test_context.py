from __future__ import annotations

import pytest

from pdfreshape.tools.common.context import ExecutionContext
from pdfreshape.tools.common.exceptions import CancelledError, StructuralMergeError


def test_cancellation_is_cooperative() -> None:
    context = ExecutionContext()
    context.assert_not_cancelled()
    assert not context.is_cancelled()

    context.cancel()

    assert context.is_cancelled()
    with pytest.raises(CancelledError):
        context.assert_not_cancelled()


def test_assert_lenient_reraises_outside_leniency() -> None:
    error = StructuralMergeError("broken")
    with pytest.raises(StructuralMergeError):
        ExecutionContext().assert_lenient(error)

    ExecutionContext(lenient=True).assert_lenient(error)


def test_listeners_receive_progress_and_warnings() -> None:
    steps: list[tuple[int, int]] = []
    received = []
    context = ExecutionContext(on_progress=lambda done, total: steps.append((done, total)), on_warning=received.append)

    context.report_step(1, 3)
    context.report_step(2, 3)
    cause = ValueError("bad value")
    warning = context.report_warning("Something was skipped", cause)

    assert steps == [(1, 3), (2, 3)]
    assert received == [warning]
    assert context.warnings == [warning]
    assert str(warning) == "Something was skipped: bad value"


def test_failing_listener_does_not_interrupt_reporting() -> None:
    def _broken(done: int, total: int) -> None:
        raise RuntimeError("listener exploded")

    steps: list[int] = []
    context = ExecutionContext(on_progress=_broken)
    context.add_progress_listener(lambda done, total: steps.append(done))

    context.report_step(1, 1)

    assert steps == [1]
