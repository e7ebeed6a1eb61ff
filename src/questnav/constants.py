"""Constants shared across the SDK.

These values are referenced by the models, compiler, navigation builder and
serializer.  A few can be overridden through environment variables so that
deployments can adjust behaviour without code changes.
"""

import os

# Every item kind the SDK understands.
ITEM_KINDS: tuple[str, ...] = (
    "single_choice",
    "multiple_choice",
    "open_choice",
    "text",
    "integer",
    "decimal",
    "boolean",
    "date",
    "date_time",
    "time",
    "slider",
    "display",
    "group",
)

# Kinds whose answers are picked from resolved answer options.
CHOICE_KINDS: set[str] = {"single_choice", "multiple_choice", "open_choice"}

# Kinds compared numerically in simple conditions.
NUMERIC_KINDS: set[str] = {"integer", "decimal", "slider"}

# Kinds compared as calendar dates in simple conditions.
DATE_KINDS: set[str] = {"date", "date_time"}

# Kinds that never hold an answer.
NON_ANSWERABLE_KINDS: set[str] = {"display", "group"}

# Supported precisions for date items, coarsest first.
DATE_PRECISIONS: tuple[str, ...] = ("year", "month", "day")

# Combination mode used when an item declares several conditions but no
# enable_behavior.  Overridable via QUESTNAV_DEFAULT_ENABLE_BEHAVIOR.
DEFAULT_ENABLE_BEHAVIOR = os.getenv("QUESTNAV_DEFAULT_ENABLE_BEHAVIOR", "all").lower()

# Expressions longer than this are rejected at load time.
# Overridable via QUESTNAV_MAX_EXPRESSION_LENGTH.
MAX_EXPRESSION_LENGTH = int(os.getenv("QUESTNAV_MAX_EXPRESSION_LENGTH", "4096"))

# Deepest parenthesis nesting the parser accepts.
MAX_EXPRESSION_DEPTH = 64

# Pseudo step id that stands for "interview finished".
COMPLETION = "__completion__"
