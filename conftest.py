"""Shared pytest fixtures: scripted stand-ins for the keyboard joystick."""

import random

import pytest


class FakeNunchuck:
    def __init__(self):
        self.c = False
        self.z = False

    def buttons(self):
        return self.c, self.z


class FakeJoystick:
    """
    Scripted input. `direction` is held until changed, `press(name)` queues
    one edge-triggered key and `click(x, y)` one mouse click.
    """

    def __init__(self):
        self.nunchuck = FakeNunchuck()
        self.direction = None
        self.keys = set()
        self.mouse_pos = None
        self._click = False

    def read_direction(self, possible_directions, debounce=True):
        if self.direction in possible_directions:
            return self.direction
        return None

    def is_pressed(self):
        return self.nunchuck.z

    def press(self, name):
        self.keys.add(name)

    def key_pressed(self, name):
        if name in self.keys:
            self.keys.discard(name)
            return True
        return False

    def click(self, x, y):
        self.mouse_pos = (x, y)
        self._click = True

    def mouse(self):
        return self.mouse_pos

    def clicked(self):
        was = self._click
        self._click = False
        return was


@pytest.fixture
def joystick():
    return FakeJoystick()


@pytest.fixture(autouse=True)
def seeded_random():
    random.seed(1234)
