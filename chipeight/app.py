"""Window, keyboard and timing loop that drives a :class:`Chip8` machine."""

from __future__ import annotations

import sys
from typing import Optional, Sequence

from chipeight.cpu import SCREEN_HEIGHT, SCREEN_WIDTH, Chip8, RomError

WINDOW_SIZE = (1024, 512)
CYCLES_PER_FRAME = 10
TIMER_INTERVAL_MS = 16
PIXEL_ON = 0xFFFFFFFF
PIXEL_OFF = 0xFF000000

_KEYMAP = {
    "1": 0x1, "2": 0x2, "3": 0x3, "4": 0xC,
    "q": 0x4, "w": 0x5, "e": 0x6, "r": 0xD,
    "a": 0x7, "s": 0x8, "d": 0x9, "f": 0xE,
    "z": 0xA, "x": 0x0, "c": 0xB, "v": 0xF,
}


def key_index(key_name: str) -> Optional[int]:
    """Map a keyboard key name to a CHIP-8 keypad index, or None if unmapped."""
    return _KEYMAP.get(key_name.lower())


def frame_pixels(cpu: Chip8) -> list[int]:
    """Return the display as ARGB pixel values, row by row."""
    return [PIXEL_ON if lit else PIXEL_OFF for lit in cpu.gfx]


def run_frame(cpu: Chip8, cycles: int = CYCLES_PER_FRAME) -> None:
    """Execute ``cycles`` instructions."""
    for _ in range(cycles):
        cpu.cycle()


class TimerClock:
    """Ticks the machine's timers whenever enough wall time has passed."""

    def __init__(self, interval_ms: int = TIMER_INTERVAL_MS) -> None:
        self.interval_ms = interval_ms
        self.last_tick_ms = 0

    def update(self, cpu: Chip8, now_ms: int) -> bool:
        """Tick ``cpu``'s timers if the interval has elapsed; report whether it did."""
        if now_ms - self.last_tick_ms < self.interval_ms:
            return False
        cpu.tick_timers()
        self.last_tick_ms = now_ms
        return True


def _render(pygame, screen, cpu: Chip8) -> None:
    buffer = b"".join(p.to_bytes(4, "big") for p in frame_pixels(cpu))
    frame = pygame.image.frombuffer(buffer, (SCREEN_WIDTH, SCREEN_HEIGHT), "ARGB")
    screen.fill((0, 0, 0))
    screen.blit(pygame.transform.scale(frame, screen.get_size()), (0, 0))
    pygame.display.flip()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the emulator on the ROM named in ``argv``; return an exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print("No ROM given")
        print("Usage: chipeight <rom file>")
        return 1

    cpu = Chip8()
    try:
        cpu.load_rom(args[0])
    except RomError as exc:
        print(exc)
        print("Failed to initialize!")
        return 1
    cpu.clear_graphics()

    import pygame

    pygame.init()
    try:
        screen = pygame.display.set_mode(WINDOW_SIZE)
        pygame.display.set_caption("CHIP-8 Emulator")
        clock = TimerClock()
        running = True
        while running:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type in (pygame.KEYDOWN, pygame.KEYUP):
                    if event.key == pygame.K_ESCAPE:
                        running = False
                        continue
                    index = key_index(pygame.key.name(event.key))
                    if index is not None:
                        cpu.set_key(index, event.type == pygame.KEYDOWN)

            run_frame(cpu)
            clock.update(cpu, pygame.time.get_ticks())

            if cpu.draw_flag:
                _render(pygame, screen, cpu)
                cpu.draw_flag = False

            pygame.time.delay(1)
    finally:
        pygame.quit()
    return 0


if __name__ == "__main__":
    sys.exit(main())