from store import MEMORY_SIZE, Store, to_int16, variable_index


def test_to_int16_wraps():
    assert to_int16(32767) == 32767
    assert to_int16(32768) == -32768
    assert to_int16(65535) == -1
    assert to_int16(-32769) == 32767


def test_variable_index_is_case_insensitive():
    assert variable_index("a") == variable_index("A") == 0
    assert variable_index("z") == 25


def test_set_wraps_to_sixteen_bits():
    store = Store()
    store.set(0, 40000)
    assert store.get(0) == 40000 - 65536


def test_byte_access_relative_to_variable():
    store = Store()
    store.set(0, 1000)
    store.set_byte(0, 5, 0x1FF)
    assert store.get_byte(0, 5) == 0xFF
    assert int(store.memory[1005]) == 0xFF


def test_word_is_little_endian_and_overlaps_bytes():
    store = Store()
    store.set(1, 200)
    store.set_word(1, 3, 0x1234)
    assert store.get_byte(1, 6) == 0x34
    assert store.get_byte(1, 7) == 0x12
    assert store.get_word(1, 3) == 0x1234


def test_word_read_is_signed():
    store = Store()
    store.set_word(0, 0, -2)
    assert store.get_word(0, 0) == -2
    assert store.get_byte(0, 0) == 0xFE


def test_addresses_wrap_around_memory():
    store = Store()
    store.set(0, -1)  # 0xFFFF
    store.set_word(0, 0, 0xABCD)
    assert int(store.memory[MEMORY_SIZE - 1]) == 0xCD
    assert int(store.memory[0]) == 0xAB
    store.set(1, 0)
    assert store.get_byte(1, -1) == 0xCD


def test_snapshot_lists_nonzero_variables():
    store = Store()
    store.set(2, 7)
    assert store.snapshot() == {"C": "7"}
