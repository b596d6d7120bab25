"""
A pretty-printer for bindery data structures and node trees.
"""
import collections.abc
from decimal import Decimal
from fractions import Fraction

from bindery.bindery_datatypes import Model, Sequence
from bindery.bindery_selector import Selector
from bindery.bindery_view import is_view, nearest_view


class Printer:
    """Formats Models, Sequences and Selectors into readable strings."""

    def __init__(self, indent_width=2):
        self._indent_char = " " * indent_width
        self._handlers = self._create_handlers()

    def pformat(self, obj, level=0):
        """Public entry point to format an object."""
        handler = self._get_handler(obj)
        return handler(obj, level)

    def _get_handler(self, obj):
        """Dispatcher to find the correct formatting method."""
        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        # Fallback for subclasses and other containers
        if isinstance(obj, str): return self._pformat_str
        if isinstance(obj, collections.abc.Mapping): return self._pformat_dict
        if isinstance(obj, (list, tuple, collections.abc.Sequence)): return self._pformat_list
        # Default to Python's repr for unknown types
        return lambda o, l: repr(o)

    def _create_handlers(self):
        return {
            str: self._pformat_str,
            int: self._pformat_primitive,
            float: self._pformat_primitive,
            Decimal: self._pformat_primitive,
            Fraction: self._pformat_primitive,
            bytes: self._pformat_primitive,
            bool: self._pformat_bool,
            type(None): self._pformat_none,
            Selector: self._pformat_selector,
            Model: self._pformat_dict,
            dict: self._pformat_dict,
            Sequence: self._pformat_list,
            list: self._pformat_list,
            tuple: self._pformat_list,
        }

    def _pformat_primitive(self, obj, level):
        return str(obj)

    def _pformat_str(self, obj, level):
        # Basic string formatting, does not handle complex escapes
        return f"'{obj}'"

    def _pformat_bool(self, obj, level):
        return 'true' if obj else 'false'

    def _pformat_none(self, obj, level):
        return 'none'

    def _pformat_selector(self, obj, level):
        return f"`{obj.to_string()}`"

    def _pformat_block(self, lines_in, level, open_char, close_char):
        if not lines_in:
            return f"{open_char}{close_char}"

        outer_indent = self._indent_char * level
        inner_indent = self._indent_char * (level + 1)

        lines = []
        for text in lines_in:
            item_lines = text.splitlines()
            if not item_lines:
                continue
            # Only the first line needs indenting; nested blocks indent their own contents.
            lines.append("\n".join([inner_indent + item_lines[0]] + item_lines[1:]))

        return f"{open_char}\n" + "\n".join(lines) + f"\n{outer_indent}{close_char}"

    def _pformat_dict(self, obj, level):
        if not obj:
            return "{}"
        entries = [f"{key}: {self.pformat(value, level + 1)}" for key, value in obj.items()]
        return self._pformat_block(entries, level, '{', '}')

    def _pformat_list(self, obj, level):
        return self._pformat_block([self.pformat(item, level + 1) for item in obj], level, '#[', ']')

    # --- Node trees ---

    def pformat_tree(self, node, level=0):
        """Renders a node tree with each node's bindings and the View that owns them."""
        parts = []
        for binding in node.bindings:
            if is_view(binding):
                owner = binding.scope.parent
                label = f"{type(binding).__name__}"
                if binding.scope.selector is not None:
                    label += f" {self.pformat(binding.scope.selector)}"
                label += f" ({len(binding.scope)} in scope)"
            else:
                owner = nearest_view(node)
                label = type(binding).__name__
            if owner is not None:
                label += f" <- {type(owner).__name__}@{owner.node.name}"
            parts.append(label)

        line = self._indent_char * level + node.name
        if not node.active:
            line += " (inactive)"
        if parts:
            line += " [" + ", ".join(parts) + "]"
        lines = [line]
        for child in node.children:
            lines.append(self.pformat_tree(child, level + 1))
        return "\n".join(lines)
