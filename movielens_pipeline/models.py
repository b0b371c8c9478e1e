"""
Model declarations and selection.

A model is one SQL SELECT plus a materialization directive. The project's
model list is written upstream-first, and every selection keeps that order.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set

import pandas as pd

from movielens_pipeline.errors import SelectionError

MATERIALIZATIONS = ("view", "table", "incremental")
LAYERS = ("staging", "dimension", "fact")
SCHEMA_CHANGE_POLICIES = ("ignore", "fail")


@dataclass
class Model:
    name: str
    layer: str
    materialized: str
    sql: str
    depends_on: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    transform: Optional[Callable[[pd.DataFrame], pd.DataFrame]] = None
    watermark: Optional[str] = None
    on_schema_change: str = "ignore"
    description: str = ""

    def __post_init__(self):
        if self.materialized not in MATERIALIZATIONS:
            raise ValueError(f"Model {self.name}: unknown materialization '{self.materialized}'")
        if self.layer not in LAYERS:
            raise ValueError(f"Model {self.name}: unknown layer '{self.layer}'")
        if self.on_schema_change not in SCHEMA_CHANGE_POLICIES:
            raise ValueError(f"Model {self.name}: unknown on_schema_change '{self.on_schema_change}'")
        if self.materialized == "incremental" and not self.watermark:
            raise ValueError(f"Model {self.name}: incremental models need a watermark column")
        if self.materialized == "view" and self.transform is not None:
            raise ValueError(f"Model {self.name}: views cannot have a DataFrame transform")


def model(
    name: str,
    layer: str,
    materialized: str,
    depends_on: Sequence[str] = (),
    tags: Sequence[str] = (),
    watermark: Optional[str] = None,
    on_schema_change: str = "ignore",
    description: str = "",
) -> Callable[[Callable], Model]:
    """
    Declare a model from a function returning its SQL.

    The decorated function's docstring is used as the description when none
    is given. A ``transform`` is attached afterwards with ``@<model>.post``.
    """
    def decorator(fn: Callable[[], str]) -> Model:
        return _DeclaredModel(
            name=name,
            layer=layer,
            materialized=materialized,
            sql=fn().strip(),
            depends_on=list(depends_on),
            tags=[layer, *tags],
            watermark=watermark,
            on_schema_change=on_schema_change,
            description=description or (fn.__doc__ or "").strip(),
        )
    return decorator


class _DeclaredModel(Model):
    def post(self, fn: Callable[[pd.DataFrame], pd.DataFrame]) -> Callable[[pd.DataFrame], pd.DataFrame]:
        self.transform = fn
        self.__post_init__()
        return fn


class ModelGraph:
    """The project's models, indexed by name, with upstream/downstream lookups."""

    def __init__(self, models: Iterable[Model]):
        self.models: List[Model] = list(models)
        self._by_name: Dict[str, Model] = {}
        for m in self.models:
            if m.name in self._by_name:
                raise ValueError(f"Duplicate model name: {m.name}")
            self._by_name[m.name] = m
        self._children: Dict[str, List[str]] = {m.name: [] for m in self.models}
        for m in self.models:
            for parent in m.depends_on:
                if parent not in self._by_name:
                    raise ValueError(f"Model {m.name} depends on unknown model {parent}")
                if self.models.index(self._by_name[parent]) > self.models.index(m):
                    raise ValueError(f"Model {m.name} is declared before its parent {parent}")
                self._children[parent].append(m.name)

    def __getitem__(self, name: str) -> Model:
        try:
            return self._by_name[name]
        except KeyError:
            raise SelectionError(f"No model named '{name}'") from None

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def __iter__(self):
        return iter(self.models)

    def names(self) -> List[str]:
        return [m.name for m in self.models]

    def upstream(self, name: str) -> Set[str]:
        return self._walk(name, lambda n: self[n].depends_on)

    def downstream(self, name: str) -> Set[str]:
        return self._walk(name, lambda n: self._children[n])

    def _walk(self, start: str, edges: Callable[[str], List[str]]) -> Set[str]:
        seen: Set[str] = set()
        stack = list(edges(start))
        while stack:
            current = stack.pop()
            if current not in seen:
                seen.add(current)
                stack.extend(edges(current))
        return seen

    def _resolve(self, selector: str) -> Set[str]:
        if selector.startswith("tag:"):
            tag = selector[len("tag:"):]
            found = {m.name for m in self.models if tag in m.tags}
            if not found:
                raise SelectionError(f"No model has tag '{tag}'")
            return found
        if selector.startswith("layer:"):
            layer = selector[len("layer:"):]
            if layer not in LAYERS:
                raise SelectionError(f"Unknown layer '{layer}'")
            return {m.name for m in self.models if m.layer == layer}

        with_upstream = selector.startswith("+")
        with_downstream = selector.endswith("+")
        name = selector.strip("+")
        if name not in self:
            raise SelectionError(f"No model named '{name}'")
        selected = {name}
        if with_upstream:
            selected |= self.upstream(name)
        if with_downstream:
            selected |= self.downstream(name)
        return selected

    def select(
        self,
        select: Optional[Sequence[str]] = None,
        exclude: Optional[Sequence[str]] = None,
    ) -> List[Model]:
        """
        Resolve selectors to models in declaration order.

        Each entry may hold several space- or comma-separated selectors.
        With no ``select``, every model is selected.
        """
        chosen = set(self.names()) if not select else set()
        for selector in _split_selectors(select):
            chosen |= self._resolve(selector)
        for selector in _split_selectors(exclude):
            chosen -= self._resolve(selector)
        return [m for m in self.models if m.name in chosen]


def _split_selectors(values: Optional[Sequence[str]]) -> List[str]:
    selectors = []
    for value in values or ():
        selectors.extend(part for part in value.replace(",", " ").split() if part)
    return selectors
