"""
Writes a fully populated segment buffer to disk in playlist order.
"""

import asyncio
import logging
import os
from pathlib import Path

import aiofiles

from ani_dl.utils.path import create_dir

from .fetcher import SegmentBuffer

log = logging.getLogger(__name__)


class SegmentAssembler:
    """Concatenates segment bytes into a single output file."""

    PART_SUFFIX = ".part"

    async def write(self, buffer: SegmentBuffer, output_path: Path) -> int:
        """
        Writes every slot of the buffer to output_path, strictly in index order.

        The data goes to a temporary sibling file first and is renamed into place
        only once every slot has been written, so an aborted write never leaves a
        truncated file at output_path.

        Returns:
            The number of bytes written.

        Raises:
            AssemblyError: If any slot of the buffer is empty.
        """
        output_path = Path(output_path)
        await asyncio.to_thread(create_dir, output_path.parent)
        part_path = output_path.with_name(output_path.name + self.PART_SUFFIX)

        written = 0
        try:
            async with aiofiles.open(part_path, "wb") as f:
                for chunk in buffer:
                    await f.write(chunk)
                    written += len(chunk)
            await asyncio.to_thread(os.replace, part_path, output_path)
        except BaseException:
            await asyncio.to_thread(_remove_quietly, part_path)
            raise

        log.debug(f"Wrote {len(buffer)} segments ({written} bytes) to {output_path}")
        return written


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
