"""
kpiece/planner_data.py - 规划树数据导出

收集树中所有边 (parent_state | None, state, control | None, duration)
以及每个状态的标签（2 = 边界单元，1 = 内部单元），供可视化与报告使用。
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Any

import numpy as np

logger = logging.getLogger(__name__)

TAG_INTERIOR = 1
TAG_BORDER = 2


@dataclass
class PlannerDataEdge:
    """一条树边；根节点的 source 为 None"""
    source: Optional[int]
    target: int
    control: Optional[np.ndarray] = None
    duration: float = 0.0


class PlannerData:
    """树的顶点 / 边 / 标签集合

    顶点按状态取值去重（以字节表示为键）。

    Args:
        store_controls: 是否记录控制量与持续时间
    """

    def __init__(self, store_controls: bool = True) -> None:
        self.store_controls = store_controls
        self.vertices: List[np.ndarray] = []
        self.edges: List[PlannerDataEdge] = []
        self.tags: Dict[int, int] = {}
        self._index: Dict[bytes, int] = {}

    @property
    def n_vertices(self) -> int:
        return len(self.vertices)

    @property
    def n_edges(self) -> int:
        return sum(1 for e in self.edges if e.source is not None)

    def add_vertex(self, state: np.ndarray) -> int:
        """加入顶点（已存在则返回原下标）"""
        state = np.asarray(state, dtype=np.float64)
        key = state.tobytes()
        idx = self._index.get(key)
        if idx is None:
            idx = len(self.vertices)
            self.vertices.append(state.copy())
            self._index[key] = idx
        return idx

    def vertex_index(self, state: np.ndarray) -> Optional[int]:
        return self._index.get(np.asarray(state, dtype=np.float64).tobytes())

    def record_edge(
        self,
        parent_state: Optional[np.ndarray],
        state: np.ndarray,
        control: Optional[np.ndarray] = None,
        duration: float = 0.0,
    ) -> None:
        src = None if parent_state is None else self.add_vertex(parent_state)
        dst = self.add_vertex(state)
        if self.store_controls:
            ctrl = None if control is None else np.array(control, dtype=np.float64)
            self.edges.append(PlannerDataEdge(src, dst, ctrl, float(duration)))
        else:
            self.edges.append(PlannerDataEdge(src, dst))

    def tag_state(self, state: np.ndarray, tag: int) -> None:
        self.tags[self.add_vertex(state)] = tag

    def get_tag(self, state: np.ndarray) -> Optional[int]:
        idx = self.vertex_index(state)
        return None if idx is None else self.tags.get(idx)

    def vertices_with_tag(self, tag: int) -> List[int]:
        return [v for v, t in self.tags.items() if t == tag]

    def clear(self) -> None:
        self.vertices.clear()
        self.edges.clear()
        self.tags.clear()
        self._index.clear()

    # ── 序列化 ──

    def to_dict(self) -> Dict[str, Any]:
        return {
            'vertices': [v.tolist() for v in self.vertices],
            'edges': [
                {
                    'source': e.source,
                    'target': e.target,
                    'control': None if e.control is None else e.control.tolist(),
                    'duration': e.duration,
                }
                for e in self.edges
            ],
            'tags': {str(k): v for k, v in self.tags.items()},
        }

    def to_json(self, filepath: str | Path) -> str:
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        logger.info("树数据已保存到 %s (%d 顶点, %d 边)",
                    filepath, self.n_vertices, self.n_edges)
        return str(filepath)
