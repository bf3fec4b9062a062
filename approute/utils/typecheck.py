import typing
from types import UnionType


def check_option_type(name: str, value: typing.Any, typeinfo: typing.Any) -> None:
    """
    Raise a TypeError unless value fits typeinfo. Only the shapes options
    use are supported: plain classes and unions of them (Optional[X], X | None).
    """
    origin = typing.get_origin(typeinfo)
    if origin is typing.Union or origin is UnionType:
        candidates = typing.get_args(typeinfo)
    else:
        candidates = (typeinfo,)

    for T in candidates:
        if T is type(None):
            ok = value is None
        elif T is float:
            # ints are fine for float options ("apply_delay: 1"), bools are not.
            ok = isinstance(value, (int, float)) and not isinstance(value, bool)
        elif T is int:
            ok = isinstance(value, int) and not isinstance(value, bool)
        else:
            ok = isinstance(value, T)
        if ok:
            return
    raise TypeError(f"Expected {typeinfo} for {name}, but got {type(value)}.")


def typespec_to_str(typespec: typing.Any) -> str:
    args = typing.get_args(typespec)
    if type(None) in args and len(args) == 2:
        (inner,) = (a for a in args if a is not type(None))
        return f"optional {typespec_to_str(inner)}"
    if typespec in (str, int, float):
        return typespec.__name__
    raise NotImplementedError(f"Unsupported option type: {typespec}")
