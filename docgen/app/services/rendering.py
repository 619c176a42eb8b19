"""
Strict markup rendering.

This module turns template source text plus an arbitrary JSON-like data
tree into rendered HTML.

Design guarantees:
- Deterministic rendering (Jinja2, no globals beyond the data tree)
- HTML autoescaping of every interpolated value
- Strict placeholders: an absent key, an out-of-range index or a null
  value fails the render with RenderFailedError naming the dotted path
  (e.g. ``client.address.city``), instead of emitting empty text

Optional sections remain expressible with ``is defined`` and
``|default(...)``, both of which treat null like absence.

The data tree is exposed to templates through read-only, path-aware
views (DataTree / DataList). The views are what let a failure report
the full path rather than only the last key. Dotted access on a view
always means a data key, never a mapping method: ``order.items`` is the
``items`` key of ``order``. Use the ``items`` / ``dictsort`` filters to
iterate key/value pairs.
"""

from __future__ import annotations

import functools
from collections.abc import Mapping, Sequence
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional, Tuple

from jinja2 import Environment, StrictUndefined, TemplateError, Undefined, UndefinedError
from jinja2.utils import missing as _jinja_missing

from docgen.app.errors import RenderFailedError


class _Missing:
    """Sentinel returned by ``lookup`` for unresolvable paths."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------


def join_path(base: str, segment: Any) -> str:
    if isinstance(segment, int):
        return f"{base}[{segment}]"
    if not base:
        return str(segment)
    return f"{base}.{segment}"


def lookup(data: Any, path: str) -> Any:
    """
    Resolve a dotted path (``a.b.0.c``) against a JSON-like tree.

    Returns MISSING when any segment is absent or null; never raises
    for intermediate missing segments.
    """
    current = data
    for segment in path.split("."):
        if current is None:
            return MISSING
        if isinstance(current, Mapping):
            if segment not in current:
                return MISSING
            current = current[segment]
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError):
                return MISSING
        else:
            return MISSING
    return MISSING if current is None else current


# ---------------------------------------------------------------------------
# Strict undefined with full placeholder path
# ---------------------------------------------------------------------------


class MissingPlaceholderError(UndefinedError):
    def __init__(self, message: Optional[str] = None, *, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path


class PathUndefined(StrictUndefined):
    """
    StrictUndefined that remembers which data path it stands for.
    """

    __slots__ = ("_parent_path",)

    def __init__(
        self,
        hint: Optional[str] = None,
        obj: Any = _jinja_missing,
        name: Optional[str] = None,
        exc: type = UndefinedError,
        *,
        parent_path: Optional[str] = None,
    ) -> None:
        super().__init__(hint, obj, name, exc)
        # Path of a scalar parent, which cannot carry its own path.
        self._parent_path = parent_path
        self._undefined_exception = functools.partial(
            MissingPlaceholderError, path=self.placeholder_path
        )

    @property
    def placeholder_path(self) -> Optional[str]:
        name = self._undefined_name
        parent = self._undefined_obj

        if self._parent_path is not None:
            return self._parent_path if name is None else join_path(self._parent_path, name)
        if isinstance(parent, (DataTree, DataList)):
            return parent._path if name is None else join_path(parent._path, name)
        return None if name is None else str(name)

    @property
    def _undefined_message(self) -> str:
        if self._undefined_hint:
            return self._undefined_hint
        path = self.placeholder_path
        if path is None:
            return "undefined value"
        return f"placeholder '{path}' is missing or null"


# ---------------------------------------------------------------------------
# Path-aware read-only views
# ---------------------------------------------------------------------------


# Most recent scalar handed out by a view, with its path. Jinja evaluates
# ``a.b.c`` inside out, so when ``c`` fails on a scalar ``a.b`` this is
# still the entry for ``a.b``.
_last_scalar: ContextVar[Optional[Tuple[Any, str]]] = ContextVar(
    "docgen_last_scalar", default=None
)


def _child(parent: Any, key: Any, value: Any) -> Any:
    # Null is treated exactly like an absent key.
    if value is None:
        return PathUndefined(obj=parent, name=key)
    path = join_path(parent._path, key)
    if isinstance(value, Mapping):
        return DataTree(value, path)
    if isinstance(value, (list, tuple)):
        return DataList(value, path)
    _last_scalar.set((value, path))
    return value


def _scalar_path(obj: Any) -> Optional[str]:
    entry = _last_scalar.get()
    if entry is not None and entry[0] is obj:
        return entry[1]
    return None


class DataTree(Mapping):
    """
    Read-only mapping view over one object node of the data tree.
    """

    __slots__ = ("_data", "_path")

    def __init__(self, data: Mapping, path: str = "") -> None:
        self._data = data
        self._path = path

    def __getitem__(self, key: Any) -> Any:
        return _child(self, key, self._data[key])

    def __contains__(self, key: Any) -> bool:
        return self._data.get(key) is not None

    def get(self, key: Any, default: Any = None) -> Any:
        if key not in self:
            return default
        return self[key]

    def __iter__(self) -> Iterator[Any]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __str__(self) -> str:
        return str(self._data)

    def __repr__(self) -> str:
        return f"DataTree({self._path or '<root>'})"


class DataList(Sequence):
    """
    Read-only sequence view over one array node of the data tree.
    """

    __slots__ = ("_data", "_path")

    def __init__(self, data: Sequence, path: str) -> None:
        self._data = data
        self._path = path

    def __getitem__(self, index: Any) -> Any:
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(len(self._data)))]
        value = self._data[index]
        if index < 0:
            index += len(self._data)
        return _child(self, index, value)

    def __iter__(self) -> Iterator[Any]:
        for index, value in enumerate(self._data):
            yield _child(self, index, value)

    def __len__(self) -> int:
        return len(self._data)

    def __str__(self) -> str:
        return str(self._data)

    def __repr__(self) -> str:
        return f"DataList({self._path})"


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------


class DataEnvironment(Environment):
    """
    Environment whose attribute and item lookups on data views resolve
    data keys only.

    The stock lookup tries Python attributes first, which would turn
    ``order.items`` into the bound ``Mapping.items`` method.
    """

    def getattr(self, obj: Any, attribute: str) -> Any:
        if isinstance(obj, (DataTree, DataList)):
            return self._resolve(obj, attribute)
        return self._with_scalar_path(obj, attribute, super().getattr(obj, attribute))

    def getitem(self, obj: Any, argument: Any) -> Any:
        if isinstance(obj, (DataTree, DataList)):
            return self._resolve(obj, argument)
        return self._with_scalar_path(obj, argument, super().getitem(obj, argument))

    def _resolve(self, view: Any, key: Any) -> Any:
        try:
            return view[key]
        except (TypeError, LookupError):
            return self.undefined(obj=view, name=key)

    def _with_scalar_path(self, obj: Any, key: Any, value: Any) -> Any:
        if not isinstance(value, Undefined) or isinstance(obj, Undefined):
            return value
        parent_path = _scalar_path(obj)
        if parent_path is None:
            return value
        return self.undefined(obj=obj, name=key, parent_path=parent_path)


class TemplateRenderer:
    """
    Pure rendering function with a memoised template compiler.

    Compiled templates depend only on their source text, so caching
    them is invisible to callers and keeps output deterministic.
    """

    def __init__(self, *, compiled_cache_size: int = 64) -> None:
        self._env = DataEnvironment(
            undefined=PathUndefined,
            autoescape=True,
            keep_trailing_newline=True,
            auto_reload=False,
        )
        self._compile = functools.lru_cache(maxsize=compiled_cache_size)(
            self._env.from_string
        )

    def render(self, template_text: str, data: Mapping[str, Any]) -> str:
        token = _last_scalar.set(None)
        try:
            root = DataTree(data)
            # Null top-level values are left out so they resolve as undefined.
            context: Dict[str, Any] = {
                key: root[key] for key in data if data[key] is not None
            }
            _last_scalar.set(None)
            template = self._compile(template_text)
            return template.render(context)
        except MissingPlaceholderError as exc:
            raise RenderFailedError(str(exc), path=exc.path) from exc
        except UndefinedError as exc:
            raise RenderFailedError(str(exc)) from exc
        except TemplateError as exc:
            raise RenderFailedError(f"Template error: {exc}") from exc
        finally:
            _last_scalar.reset(token)


_default_renderer = TemplateRenderer()


def render(template_text: str, data: Mapping[str, Any]) -> str:
    """
    Render ``template_text`` against ``data`` in strict mode.
    """
    return _default_renderer.render(template_text, data)
