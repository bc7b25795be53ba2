from typing import Final, Literal

from typing_extensions import Any, TypedDict


class _GlobalOptions(TypedDict):
    xml_pretty_print: bool
    xml_indent: str
    detect_text_encoding: bool


GLOBAL_OPTIONS: Final[_GlobalOptions] = {
    "xml_pretty_print": True,
    "xml_indent": " ",
    "detect_text_encoding": True,
}

_Opt = Literal[
    "xml_pretty_print",
    "xml_indent",
    "detect_text_encoding",
]


def set_global_option(opt: _Opt, value: Any) -> None:
    if opt not in GLOBAL_OPTIONS:
        raise KeyError(f'Unknown global option "{opt}"')

    if opt in ("xml_pretty_print", "detect_text_encoding"):
        GLOBAL_OPTIONS[opt] = bool(value)
    elif opt == "xml_indent":
        if isinstance(value, int):
            value = " " * value
        GLOBAL_OPTIONS[opt] = str(value)


def get_global_option(opt: _Opt) -> Any:
    return GLOBAL_OPTIONS[opt]
