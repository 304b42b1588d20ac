"""
kpiece/termination.py - 规划终止条件

终止条件是零参数可调用对象，返回 True 表示预算耗尽。
solve() 在每次迭代开始时轮询一次。
"""

import time
from typing import Callable

TerminationCondition = Callable[[], bool]


class IterationTermination:
    """被轮询 n 次后触发（即最多执行 n 次迭代）"""

    def __init__(self, max_iterations: int) -> None:
        if max_iterations < 0:
            raise ValueError("max_iterations 不能为负")
        self.max_iterations = max_iterations
        self.count = 0

    def __call__(self) -> bool:
        if self.count >= self.max_iterations:
            return True
        self.count += 1
        return False

    def reset(self) -> None:
        self.count = 0


class TimedTermination:
    """从首次轮询开始计时，超过 seconds 秒后触发"""

    def __init__(self, seconds: float) -> None:
        self.seconds = seconds
        self._deadline = None

    def __call__(self) -> bool:
        now = time.perf_counter()
        if self._deadline is None:
            self._deadline = now + self.seconds
        return now >= self._deadline

    def reset(self) -> None:
        self._deadline = None


class CombinedTermination:
    """任一子条件触发即触发"""

    def __init__(self, *conditions: TerminationCondition) -> None:
        self.conditions = conditions

    def __call__(self) -> bool:
        return any(cond() for cond in self.conditions)
