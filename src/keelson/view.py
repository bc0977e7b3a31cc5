"""The :class:`View` value object: a template name plus its data bag."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterator, Optional


class View:
    """A named template reference with a mutable, mergeable data bag.

    The name is a template path relative to the project root, without
    suffix, such as ``Modules/Home/Views/Default``. Data entries are readable
    and writable as attributes, which is how handlers and templates use
    them, so the name and the data mapping are reached through methods::

        view = View("Modules/Home/Views/Default")
        view.message = "Welcome"
        assert view.get_data() == {"message": "Welcome"}

    Reading a missing entry as an attribute raises :class:`AttributeError`.

    Args:
        name: The template path. Empty until assigned.
        data: Initial data entries.
    """

    __slots__ = ("_name", "_data")

    def __init__(self, name: str = "", data: Optional[Mapping[str, Any]] = None) -> None:
        object.__setattr__(self, "_name", name or "")
        object.__setattr__(self, "_data", dict(data or {}))

    def __getattr__(self, key: str) -> Any:
        if key.startswith("__") or key in View.__slots__:
            raise AttributeError(key)
        try:
            return self._data[key]
        except KeyError:
            raise AttributeError(f"The key '{key}' doesn't exist in the view data") from None

    def __setattr__(self, key: str, value: Any) -> None:
        self._data[key] = value

    def __delattr__(self, key: str) -> None:
        try:
            del self._data[key]
        except KeyError:
            raise AttributeError(key) from None

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __repr__(self) -> str:
        return f"View(name={self._name!r}, data={self._data!r})"

    def get_name(self) -> str:
        return self._name

    def set_name(self, name: str) -> None:
        """Assign the template name.

        A view is named once, either at construction or by
        :meth:`keelson.module.Module.execute`; renaming is not prevented.
        """
        object.__setattr__(self, "_name", name)

    def has_name(self) -> bool:
        """Whether a template name has been assigned."""
        return bool(self._name)

    def get_data(self) -> dict[str, Any]:
        """The live data mapping (not a copy)."""
        return self._data

    def set_data(self, data: Mapping[str, Any]) -> None:
        object.__setattr__(self, "_data", dict(data))

    def has(self, key: str) -> bool:
        return key in self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def merge_data(self, data: Mapping[str, Any], is_reversed: bool = False) -> None:
        """Merge *data* into the view data.

        Args:
            data: Entries to merge.
            is_reversed: When ``False`` the incoming entries win on key
                collision; when ``True`` the existing entries win.
        """
        if is_reversed:
            merged = {**data, **self._data}
        else:
            merged = {**self._data, **data}
        object.__setattr__(self, "_data", merged)
