"""Staging a local source checkout into a temporary install tree."""

from __future__ import annotations

import logging
import shutil
import tempfile

from ..errors import BuildError
from ..system import CommandRunner
from .engine import check_source

logger = logging.getLogger(__name__)


class LocalSourceStager:
    """
    Runs ``rake install DESTDIR=...`` in a source directory.

    Use as a context manager; the staged tree is removed on exit.
    """

    def __init__(self, runner: CommandRunner | None = None):
        self.runner = runner or CommandRunner()
        self.temp_dir: str | None = None

    def __enter__(self) -> "LocalSourceStager":
        self.temp_dir = tempfile.mkdtemp(prefix="yupdate-")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.clean_up()
        return False

    def clean_up(self) -> None:
        if self.temp_dir:
            shutil.rmtree(self.temp_dir, ignore_errors=True)
            self.temp_dir = None

    def stage(self, source_dir: str) -> str:
        if self.temp_dir is None:
            raise RuntimeError("LocalSourceStager must be used as a context manager")
        check_source(source_dir)
        logger.info("Installing %s into %s", source_dir, self.temp_dir)
        self.runner.run(
            ("rake", "install", f"DESTDIR={self.temp_dir}"), cwd=source_dir
        ).check(BuildError)
        return self.temp_dir
