# chipeight

A CHIP-8 interpreter. It runs CHIP-8 ROMs in a pygame window that shows
the 64×32 display scaled up to 1024×512.

## Installing

```
pip install .
```

To run the tests as well:

```
pip install ".[test]"
pytest
```

## Running a ROM

```
chipeight path/to/game.ch8
```

The same entry point can be started with `python -m chipeight.app path/to/game.ch8`.

Without a ROM argument the command prints a usage line and exits with
status 1. If the ROM cannot be opened or is larger than 3584 bytes
(memory from 0x200 to the end of the 4 KiB address space), it prints
the reason and exits with status 1.

Each pass of the loop runs ten instructions, then counts the delay and
sound timers down by one if at least 16 ms have passed since the last
count, and redraws the window when the display has changed. Pressing
Escape or closing the window quits.

### Keys

The CHIP-8 hex keypad is mapped to the left side of the keyboard:

| Keyboard | CHIP-8  |
|----------|---------|
| 1 2 3 4  | 1 2 3 C |
| Q W E R  | 4 5 6 D |
| A S D F  | 7 8 9 E |
| Z X C V  | A 0 B F |

## Using the interpreter from Python

The machine lives in `chipeight.cpu` and needs no display:

```python
import random
from chipeight.cpu import Chip8

cpu = Chip8(random.Random(0))
cpu.load_bytes(bytes([0x60, 0x2A]))   # LD V0, 0x2A
cpu.cycle()
assert cpu.v[0] == 0x2A
```

- `Chip8(rng=None)` creates a machine in its power-on state: program
  counter at 0x200, the built-in font at 0x050, display cleared. The
  optional `random.Random` is used by the `Cxkk` instruction.
- `Chip8.reset()` returns the machine to that state.
- `Chip8.load_rom(path)` loads a file at 0x200 and raises `RomError`
  when the file cannot be opened or does not fit in memory.
  `Chip8.load_bytes(data)` does the same for bytes already in hand.
- `Chip8.cycle()` fetches, decodes and executes one instruction.
- `Chip8.set_key(index, pressed)` sets keypad key 0 to 15 and raises
  `ValueError` for any other index.
- `Chip8.tick_timers()` counts the delay and sound timers down by one,
  stopping at zero.
- `Chip8.clear_graphics()` blanks the display and sets `draw_flag`.

The state is open to inspection: `memory`, `v` (registers V0–VF),
`gfx` (one byte per pixel, row by row), `key`, `stack`, `sp`, `index`
(the I register), `pc`, `opcode`, `delay_timer`, `sound_timer` and
`draw_flag`.

Unknown opcodes, stack overflow and stack underflow are reported as
warnings through the `chipeight.cpu` logger rather than raised. On a
stack overflow or underflow the program counter is left where it was.
`Fx0A` waits for a key by leaving the program counter unchanged until a
key is down.

`chipeight.app` holds the pieces the window loop is built from:
`key_index` maps a key name to a keypad index (or `None`),
`frame_pixels` turns the display into ARGB colour values, `run_frame`
runs a batch of cycles (ten by default), and `TimerClock` ticks the
timers once its interval (16 ms by default) has passed.

## What it does not do

- It plays no sound: the sound timer counts down, but nothing is heard.
- It runs the original CHIP-8 instruction set only; there is no support
  for SUPER-CHIP or XO-CHIP extensions.
- There are no save states, no debugger and no settings for speed,
  colours or key bindings.