from cursor import END, Cursor, is_alpha, is_digit, is_xdigit


def test_classification():
    assert is_alpha("q") and is_alpha("Q")
    assert not is_alpha("1") and not is_alpha(END)
    assert is_digit("7") and not is_digit("a")
    assert is_xdigit("f") and is_xdigit("F") and is_xdigit("9")
    assert not is_xdigit("g") and not is_xdigit(END)


def test_peek_past_end_returns_sentinel():
    cursor = Cursor("ab", 1)
    assert cursor.peek() == "b"
    assert cursor.peek(1) == END
    cursor.advance()
    assert cursor.at_end


def test_read_decimal_and_hex():
    cursor = Cursor("120 x")
    assert cursor.read_decimal() == 120
    assert cursor.peek() == " "
    assert cursor.read_decimal() is None

    cursor = Cursor("1fZ")
    assert cursor.read_hex() == 0x1F
    assert cursor.peek() == "Z"


def test_read_variable_consumes_whole_word():
    cursor = Cursor("count=1")
    assert cursor.read_variable() == "c"
    assert cursor.peek() == "="
    assert Cursor("=1").read_variable() is None


def test_read_string():
    cursor = Cursor('"hi"/')
    assert cursor.read_string() == ("hi", True)
    assert cursor.peek() == "/"

    cursor = Cursor('"open\nmore')
    assert cursor.read_string() == ("open\nmore", False)
    assert cursor.at_end


def test_skip_to_newline_and_read_until_newline():
    cursor = Cursor("abc\n20 x")
    cursor.skip_to_newline()
    assert cursor.peek() == "2"

    cursor = Cursor("file.mp\n20")
    assert cursor.read_until_newline() == "file.mp"
    assert cursor.peek() == "\n"

    cursor = Cursor("tail")
    cursor.skip_to_newline()
    assert cursor.at_end


def test_copy_is_independent_and_shares_text():
    cursor = Cursor("10 A=1\n", 3)
    saved = cursor.copy()
    cursor.advance(2)
    assert saved.pos == 3
    assert saved.text is cursor.text


def test_line_number_at():
    text = "10 A=1\n20 B=2\n"
    assert Cursor(text, 12).line_number_at() == 20
    assert Cursor(text, 0).line_number_at() == 10
