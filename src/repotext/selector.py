"""
Interactive file picking through ``fzf``.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from typing import List, Optional

from .config import Options
from .core import SelectorError
from .dumper import TextDumper

logger = logging.getLogger(__name__)

FZF_PROMPT = "> Select files with TAB/Shift-TAB. Press Enter to confirm. "
# fzf exits with 130 when the user aborts with Ctrl-C / Esc.
FZF_ABORTED = 130


class InteractiveSelector:
    def __init__(self, text_dumper: TextDumper, fzf: str = "fzf") -> None:
        self.text_dumper = text_dumper
        self.fzf = fzf

    def is_fzf_available(self) -> bool:
        return shutil.which(self.fzf) is not None

    def run_fzf(self, files: List[str]) -> List[str]:
        try:
            proc = subprocess.run(
                [self.fzf, "--multi", "--prompt", FZF_PROMPT],
                input="\n".join(files),
                stdout=subprocess.PIPE,
                text=True,
            )
        except OSError as e:
            raise SelectorError(f"Could not run {self.fzf}: {e}") from e
        if proc.returncode == FZF_ABORTED:
            return []
        if proc.returncode != 0:
            raise SelectorError(f"{self.fzf} process exited with code {proc.returncode}")
        return [line for line in proc.stdout.splitlines() if line]

    def select_files(self, options: Options) -> Optional[str]:
        """Let the user pick files, dump them, and return the output path."""
        if not self.is_fzf_available():
            raise SelectorError(
                f'The "{self.fzf}" command is not installed or not in your PATH. '
                "See: https://github.com/junegunn/fzf#installation"
            )
        config = self.text_dumper.load_config(options)
        candidates = self.text_dumper.repository_scanner.get_files(
            config.include_patterns, config.exclude_patterns
        )
        selected = self.run_fzf(candidates)
        if not selected:
            logger.info("No files selected. Exiting.")
            return None
        output_path = self.text_dumper.generate_text_dump(options, selected)
        logger.info("%d files have been dumped to %s", len(selected), output_path)
        return output_path
