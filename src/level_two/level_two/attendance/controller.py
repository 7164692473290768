from __future__ import annotations

from flask import Flask

from ..container import Container
from ..records.controller import register_recorder
from ..records.model import ATTENDANCE


def register(app: Flask, container: Container) -> None:
    register_recorder(app, container, ATTENDANCE, slug="attendance", template="attendance.html")
