"""The CHIP-8 virtual machine: memory, registers, timers, display and keypad."""

from __future__ import annotations

import logging
import random
from pathlib import Path
from typing import NamedTuple, Optional, Union

log = logging.getLogger(__name__)

SCREEN_WIDTH = 64
SCREEN_HEIGHT = 32
MEMORY_SIZE = 4096
PROGRAM_START = 0x200
FONT_START_ADDRESS = 0x050
STACK_DEPTH = 16
REGISTER_COUNT = 16
KEY_COUNT = 16
MAX_ROM_SIZE = MEMORY_SIZE - PROGRAM_START

FONT_SET = bytes(
    [
        0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
        0x20, 0x60, 0x20, 0x20, 0x70,  # 1
        0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
        0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
        0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
        0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
        0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
        0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
        0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
        0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
        0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
        0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
        0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
        0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
        0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
        0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
    ]
)
FONT_GLYPH_SIZE = 5


class RomError(Exception):
    """A ROM could not be read or does not fit in memory."""


class _Operands(NamedTuple):
    code: int
    x: int
    y: int
    nnn: int
    kk: int
    n: int

    @classmethod
    def decode(cls, opcode: int) -> "_Operands":
        return cls(
            code=opcode,
            x=(opcode & 0x0F00) >> 8,
            y=(opcode & 0x00F0) >> 4,
            nnn=opcode & 0x0FFF,
            kk=opcode & 0x00FF,
            n=opcode & 0x000F,
        )


class Chip8:
    """A CHIP-8 machine that executes one instruction per call to :meth:`cycle`."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self._handlers = {
            0x0: self._op_system,
            0x1: self._op_jump,
            0x2: self._op_call,
            0x3: self._op_skip_eq_byte,
            0x4: self._op_skip_ne_byte,
            0x5: self._op_skip_eq_reg,
            0x6: self._op_load_byte,
            0x7: self._op_add_byte,
            0x8: self._op_alu,
            0x9: self._op_skip_ne_reg,
            0xA: self._op_load_index,
            0xB: self._op_jump_offset,
            0xC: self._op_random,
            0xD: self._op_draw,
            0xE: self._op_key_skip,
            0xF: self._op_misc,
        }
        self.reset()

    def reset(self) -> None:
        """Put the machine in its power-on state with the font loaded."""
        self.memory = bytearray(MEMORY_SIZE)
        self.v = bytearray(REGISTER_COUNT)
        self.gfx = bytearray(SCREEN_WIDTH * SCREEN_HEIGHT)
        self.key = [False] * KEY_COUNT
        self.stack: list[int] = []
        self.index = 0
        self.opcode = 0
        self.pc = PROGRAM_START
        self.delay_timer = 0
        self.sound_timer = 0
        self.draw_flag = False
        self.memory[FONT_START_ADDRESS:FONT_START_ADDRESS + len(FONT_SET)] = FONT_SET
        self.clear_graphics()

    @property
    def sp(self) -> int:
        """Number of return addresses on the stack."""
        return len(self.stack)

    def clear_graphics(self) -> None:
        """Blank the display and request a redraw."""
        self.gfx[:] = bytes(len(self.gfx))
        self.draw_flag = True

    def load_rom(self, path: Union[str, Path]) -> None:
        """Load a ROM file into memory at the program start address."""
        try:
            data = Path(path).read_bytes()
        except OSError as exc:
            raise RomError(f"Failed to open file {path}") from exc
        self.load_bytes(data)

    def load_bytes(self, data: bytes) -> None:
        """Copy program bytes into memory at the program start address."""
        if len(data) > MAX_ROM_SIZE:
            raise RomError("ROM too large")
        self.memory[PROGRAM_START:PROGRAM_START + len(data)] = data

    def set_key(self, index: int, pressed: bool) -> None:
        """Record the state of keypad key ``index`` (0 to 15)."""
        if not 0 <= index < KEY_COUNT:
            raise ValueError(f"key index out of range: {index}")
        self.key[index] = bool(pressed)

    def tick_timers(self) -> None:
        """Count the delay and sound timers down by one, stopping at zero."""
        if self.delay_timer > 0:
            self.delay_timer -= 1
        if self.sound_timer > 0:
            self.sound_timer -= 1

    def cycle(self) -> None:
        """Fetch, decode and execute one instruction."""
        high = self.memory[self.pc % MEMORY_SIZE]
        low = self.memory[(self.pc + 1) % MEMORY_SIZE]
        self.opcode = (high << 8) | low
        self._handlers[self.opcode >> 12](_Operands.decode(self.opcode))

    # helpers

    def _advance(self) -> None:
        self.pc = (self.pc + 2) & 0xFFFF

    def _skip_if(self, condition: bool) -> None:
        self.pc = (self.pc + (4 if condition else 2)) & 0xFFFF

    def _mem_addr(self, offset: int = 0) -> int:
        return (self.index + offset) % MEMORY_SIZE

    # instruction handlers

    def _op_system(self, op: _Operands) -> None:
        if op.code == 0x00E0:
            self.clear_graphics()
            self._advance()
        elif op.code == 0x00EE:
            if not self.stack:
                log.warning("Stack underflow")
                return
            self.pc = self.stack.pop()
        else:
            log.warning("Unknown opcode 0x%04X", op.code)
            self._advance()

    def _op_jump(self, op: _Operands) -> None:
        self.pc = op.nnn

    def _op_call(self, op: _Operands) -> None:
        if len(self.stack) >= STACK_DEPTH:
            log.warning("Stack overflow")
            return
        self.stack.append((self.pc + 2) & 0xFFFF)
        self.pc = op.nnn

    def _op_skip_eq_byte(self, op: _Operands) -> None:
        self._skip_if(self.v[op.x] == op.kk)

    def _op_skip_ne_byte(self, op: _Operands) -> None:
        self._skip_if(self.v[op.x] != op.kk)

    def _op_skip_eq_reg(self, op: _Operands) -> None:
        self._skip_if(self.v[op.x] == self.v[op.y])

    def _op_load_byte(self, op: _Operands) -> None:
        self.v[op.x] = op.kk
        self._advance()

    def _op_add_byte(self, op: _Operands) -> None:
        self.v[op.x] = (self.v[op.x] + op.kk) & 0xFF
        self._advance()

    def _op_alu(self, op: _Operands) -> None:
        v, x, y = self.v, op.x, op.y
        match op.n:
            case 0x0:
                v[x] = v[y]
            case 0x1:
                v[x] |= v[y]
            case 0x2:
                v[x] &= v[y]
            case 0x3:
                v[x] ^= v[y]
            case 0x4:
                total = v[x] + v[y]
                v[0xF] = int(total > 0xFF)
                v[x] = total & 0xFF
            case 0x5:
                v[0xF] = int(v[x] > v[y])
                v[x] = (v[x] - v[y]) & 0xFF
            case 0x6:
                v[0xF] = v[x] & 0x1
                v[x] >>= 1
            case 0x7:
                v[0xF] = int(v[y] > v[x])
                v[x] = (v[y] - v[x]) & 0xFF
            case 0xE:
                v[0xF] = (v[x] & 0x80) >> 7
                v[x] = (v[x] << 1) & 0xFF
            case _:
                log.warning("Unknown 8xy* opcode 0x%04X", op.code)
        self._advance()

    def _op_skip_ne_reg(self, op: _Operands) -> None:
        self._skip_if(self.v[op.x] != self.v[op.y])

    def _op_load_index(self, op: _Operands) -> None:
        self.index = op.nnn
        self._advance()

    def _op_jump_offset(self, op: _Operands) -> None:
        self.pc = op.nnn + self.v[0]

    def _op_random(self, op: _Operands) -> None:
        self.v[op.x] = self._rng.randrange(256) & op.kk
        self._advance()

    def _op_draw(self, op: _Operands) -> None:
        origin_x = self.v[op.x] % SCREEN_WIDTH
        origin_y = self.v[op.y] % SCREEN_HEIGHT
        self.v[0xF] = 0
        self.draw_flag = True
        for row in range(op.n):
            sprite = self.memory[self._mem_addr(row)]
            for col in range(8):
                if not sprite & (0x80 >> col):
                    continue
                pos = (origin_x + col) + (origin_y + row) * SCREEN_WIDTH
                if pos >= len(self.gfx):
                    continue
                if self.gfx[pos]:
                    self.v[0xF] = 1
                self.gfx[pos] ^= 1
        self._advance()

    def _op_key_skip(self, op: _Operands) -> None:
        pressed = self.key[self.v[op.x] % KEY_COUNT]
        if op.kk == 0x9E:
            self._skip_if(pressed)
        elif op.kk == 0xA1:
            self._skip_if(not pressed)
        else:
            log.warning("Unknown Ex** opcode: 0x%04X", op.code)
            self._advance()

    def _op_misc(self, op: _Operands) -> None:
        x = op.x
        match op.kk:
            case 0x07:
                self.v[x] = self.delay_timer
            case 0x0A:
                pressed = next((i for i, down in enumerate(self.key) if down), None)
                if pressed is None:
                    return  # wait for a key press
                self.v[x] = pressed
            case 0x15:
                self.delay_timer = self.v[x]
            case 0x18:
                self.sound_timer = self.v[x]
            case 0x1E:
                self.index = (self.index + self.v[x]) & 0xFFFF
            case 0x29:
                self.index = FONT_START_ADDRESS + self.v[x] * FONT_GLYPH_SIZE
            case 0x33:
                value = self.v[x]
                for offset, digit in enumerate((value // 100, (value // 10) % 10, value % 10)):
                    self.memory[self._mem_addr(offset)] = digit
            case 0x55:
                for offset, value in enumerate(self.v[: x + 1]):
                    self.memory[self._mem_addr(offset)] = value
            case 0x65:
                for offset in range(x + 1):
                    self.v[offset] = self.memory[self._mem_addr(offset)]
            case _:
                log.warning("Unknown Fx** opcode: 0x%04X", op.code)
        self._advance()