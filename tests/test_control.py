from control import CallFrame, ForFrame, LoopFrame, RuntimeStack, find_line
from cursor import Cursor

PROGRAM = "10 A=1\n20 B=2\n55 C=3\n"


def test_find_line_exact_and_fall_through():
    assert find_line(PROGRAM, 20) == (20, 7)
    assert find_line(PROGRAM, 21) == (55, 14)
    assert find_line(PROGRAM, 1) == (10, 0)


def test_find_line_past_last_line():
    assert find_line(PROGRAM, 56) is None


def test_find_line_skips_leading_comment():
    text = "#!/usr/bin/env miep\n10 A=1\n"
    assert find_line(text, 1) == (10, len("#!/usr/bin/env miep\n"))
    assert find_line("#only a comment", 1) is None


def test_find_line_stops_at_unnumbered_line():
    assert find_line("10 A=1\nfoo\n30 B=1\n", 30) is None


def test_stack_pops_only_matching_kind():
    stack = RuntimeStack()
    call = CallFrame(Cursor(PROGRAM, 3))
    stack.push(call)
    assert stack.pop(LoopFrame) is None
    assert stack.pop(ForFrame) is None
    assert len(stack) == 1
    assert stack.pop(CallFrame) is call
    assert stack.pop(CallFrame) is None


def test_for_frame_carries_variable_and_bound():
    stack = RuntimeStack()
    stack.push(LoopFrame(Cursor(PROGRAM, 10)))
    stack.push(ForFrame(8, Cursor(PROGRAM, 16), 5))
    frame = stack.pop(ForFrame)
    assert frame is not None
    assert (frame.variable, frame.bound) == (8, 5)
    assert frame.cursor.line_number_at() == 55
    assert isinstance(stack.frames[-1], LoopFrame)
