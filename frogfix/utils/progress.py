#!/usr/bin/env python3

from __future__ import annotations

import os
from collections.abc import Iterable, Iterator
from typing import TypeVar

from tqdm import tqdm

T = TypeVar("T")


def _progress_disabled(explicit_disable: bool | None) -> bool:
    if explicit_disable is not None:
        return explicit_disable
    flag = os.getenv("FROGFIX_PROGRESS", "").lower().strip()
    return flag in {"0", "false", "off", "no"}


def progress_iter(
    iterable: Iterable[T],
    *,
    total: int | None = None,
    desc: str | None = None,
    unit: str | None = None,
    disable: bool | None = None,
) -> Iterator[T]:
    """Yield items from iterable, displaying a progress bar unless disabled.

    The bar is closed explicitly so that an exception raised by the consumer
    does not leave a dangling bar on the terminal.
    """
    pbar = tqdm(total=total, desc=desc, unit=unit or "it", disable=_progress_disabled(disable))
    try:
        for item in iterable:
            yield item
            pbar.update(1)
    finally:
        pbar.close()
