import random

import pytest

from chipeight.cpu import (
    FONT_GLYPH_SIZE,
    FONT_SET,
    FONT_START_ADDRESS,
    MAX_ROM_SIZE,
    PROGRAM_START,
    SCREEN_WIDTH,
    STACK_DEPTH,
    Chip8,
    RomError,
)


def machine(*words):
    cpu = Chip8(random.Random(0))
    cpu.load_bytes(b"".join(w.to_bytes(2, "big") for w in words))
    return cpu


def test_reset_state():
    cpu = Chip8(random.Random(0))
    assert cpu.pc == 0x200
    assert bytes(cpu.memory[FONT_START_ADDRESS:FONT_START_ADDRESS + 80]) == FONT_SET
    assert cpu.draw_flag is True
    assert not any(cpu.gfx)
    assert cpu.sp == 0


def test_load_bytes_places_program():
    cpu = Chip8()
    cpu.load_bytes(b"\x12\x34\x56")
    assert bytes(cpu.memory[PROGRAM_START:PROGRAM_START + 3]) == b"\x12\x34\x56"


def test_load_bytes_limit():
    cpu = Chip8()
    cpu.load_bytes(bytes([7]) * MAX_ROM_SIZE)
    assert cpu.memory[-1] == 7
    with pytest.raises(RomError):
        cpu.load_bytes(bytes(MAX_ROM_SIZE + 1))


def test_load_rom_from_file(tmp_path):
    rom = tmp_path / "game.ch8"
    rom.write_bytes(b"\x60\x2a")
    cpu = Chip8()
    cpu.load_rom(rom)
    cpu.cycle()
    assert cpu.v[0] == 0x2A


def test_load_rom_missing_file(tmp_path):
    with pytest.raises(RomError):
        Chip8().load_rom(tmp_path / "missing.ch8")


def test_load_and_add_byte_wraps():
    cpu = machine(0x63FF, 0x7301)
    cpu.cycle()
    assert cpu.v[3] == 0xFF
    cpu.cycle()
    assert cpu.v[3] == 0
    assert cpu.pc == PROGRAM_START + 4


def test_call_and_return_round_trip():
    cpu = machine(0x2206, 0x0000, 0x0000, 0x00EE)
    cpu.cycle()
    assert cpu.pc == 0x206
    assert cpu.sp == 1
    cpu.cycle()
    assert cpu.pc == PROGRAM_START + 2
    assert cpu.sp == 0


def test_return_on_empty_stack_does_not_move():
    cpu = machine(0x00EE)
    cpu.cycle()
    assert cpu.pc == PROGRAM_START


def test_stack_overflow_stalls():
    cpu = machine(0x2200)
    for _ in range(STACK_DEPTH):
        cpu.cycle()
    assert cpu.sp == STACK_DEPTH
    cpu.cycle()
    assert cpu.sp == STACK_DEPTH
    assert cpu.pc == PROGRAM_START


@pytest.mark.parametrize(
    "opcode,skipped",
    [(0x3005, True), (0x3006, False), (0x4005, False), (0x4006, True)],
)
def test_byte_skips(opcode, skipped):
    cpu = machine(0x6005, opcode)
    cpu.cycle()
    cpu.cycle()
    assert cpu.pc == PROGRAM_START + (6 if skipped else 4)


def test_add_registers_sets_carry():
    cpu = machine(0x61FF, 0x6201, 0x8124)
    for _ in range(3):
        cpu.cycle()
    assert cpu.v[1] == 0
    assert cpu.v[0xF] == 1


def test_subtract_and_shift_flags():
    cpu = machine(0x6105, 0x6203, 0x8125, 0x8116)
    for _ in range(3):
        cpu.cycle()
    assert cpu.v[1] == 5 - 3
    assert cpu.v[0xF] == 1
    cpu.cycle()
    assert cpu.v[0xF] == 0
    assert cpu.v[1] == (5 - 3) >> 1


def test_jump_with_offset():
    cpu = machine(0x6004, 0xB300)
    cpu.cycle()
    cpu.cycle()
    assert cpu.pc == 0x300 + 4


def test_random_respects_mask():
    cpu = machine(*([0xC00F] * 50))
    for _ in range(50):
        cpu.cycle()
        assert cpu.v[0] & ~0x0F == 0


def test_draw_font_glyph_and_collision():
    cpu = machine(0x6000, 0xF029, 0xD005, 0xD005)
    for _ in range(3):
        cpu.cycle()
    top_row = list(cpu.gfx[:8])
    assert top_row == [(FONT_SET[0] >> (7 - bit)) & 1 for bit in range(8)]
    assert cpu.v[0xF] == 0
    cpu.cycle()
    assert not any(cpu.gfx)
    assert cpu.v[0xF] == 1


def test_font_address_points_at_glyph():
    cpu = machine(0x6A0B, 0xFA29)
    cpu.cycle()
    cpu.cycle()
    glyph = bytes(cpu.memory[cpu.index:cpu.index + FONT_GLYPH_SIZE])
    assert glyph == FONT_SET[0xB * FONT_GLYPH_SIZE:0xC * FONT_GLYPH_SIZE]


def test_bcd():
    cpu = machine(0x657B, 0xA300, 0xF533)
    for _ in range(3):
        cpu.cycle()
    assert list(cpu.memory[0x300:0x303]) == [1, 2, 3]


def test_store_and_load_registers_round_trip():
    cpu = machine(0x6011, 0x6122, 0x6233, 0xA400, 0xF255, 0x6000, 0x6100, 0x6200, 0xF265)
    for _ in range(5):
        cpu.cycle()
    stored = bytes(cpu.v[:3])
    for _ in range(4):
        cpu.cycle()
    assert bytes(cpu.v[:3]) == stored == b"\x11\x22\x33"


def test_wait_for_key_blocks_until_pressed():
    cpu = machine(0xF30A)
    cpu.cycle()
    assert cpu.pc == PROGRAM_START
    cpu.set_key(5, True)
    cpu.cycle()
    assert cpu.v[3] == 5
    assert cpu.pc == PROGRAM_START + 2


def test_key_skip():
    cpu = machine(0x6107, 0xE19E)
    cpu.set_key(7, True)
    cpu.cycle()
    cpu.cycle()
    assert cpu.pc == PROGRAM_START + 6


def test_set_key_rejects_bad_index():
    with pytest.raises(ValueError):
        Chip8().set_key(16, True)


def test_timers_count_down_to_zero():
    cpu = machine(0x6002, 0xF015, 0xF018)
    for _ in range(3):
        cpu.cycle()
    assert (cpu.delay_timer, cpu.sound_timer) == (2, 2)
    for _ in range(3):
        cpu.tick_timers()
    assert (cpu.delay_timer, cpu.sound_timer) == (0, 0)


def test_clear_screen_opcode():
    cpu = machine(0x00E0)
    cpu.gfx[SCREEN_WIDTH] = 1
    cpu.draw_flag = False
    cpu.cycle()
    assert not any(cpu.gfx)
    assert cpu.draw_flag is True


def test_unknown_opcode_advances():
    cpu = machine(0x0123, 0xE1FF)
    cpu.cycle()
    cpu.cycle()
    assert cpu.pc == PROGRAM_START + 4