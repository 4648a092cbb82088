"""Transition labels.

Labels are plain hashable, ordered values, typically grapheme strings. No
wrapper class is imposed; the module only fixes the reserved wildcard
symbol and a few predicates.

The wildcard is reserved for matching any label in future operations. The
intersection algorithm does not look at it: "any other label" behaviour
during composition comes from looping states, and a WILD label on an
edge is matched by equality like every other label."""

from collections.abc import Hashable

WILD = '.'


def is_wild(label) -> bool:
    """True if 'label' is the reserved wildcard symbol."""
    return label == WILD


def is_label(obj) -> bool:
    """True if 'obj' can be used as a transition label."""
    return isinstance(obj, Hashable)


def label_str(label) -> str:
    """Display form of a label, for printing and rendering."""
    if label == '':
        return "''"
    return str(label)
