"""并发任务组

每次扇出新建一个与任务数等大的线程池，父调用等待全部子任务完成后才返回。
递归扇出不共用有界线程池，避免父任务占满工作线程后等待子任务造成死锁。
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


def run_tasks(fn: Callable[[T], R], items: Sequence[T], name: str = "modgraph") -> list[R]:
    """并发执行 fn(item)，按提交顺序返回每个任务的结果

    fn 自身负责把可容忍的失败转换为结果值；其余异常原样抛出。
    """
    if not items:
        return []
    if len(items) == 1:
        return [fn(items[0])]
    with ThreadPoolExecutor(max_workers=len(items), thread_name_prefix=name) as executor:
        futures = [executor.submit(fn, item) for item in items]
        return [f.result() for f in futures]
