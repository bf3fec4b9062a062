from typing import Optional
from typing import Union

import pytest

from approute.utils import typecheck


def test_check_option_type():
    typecheck.check_option_type("port", 42, int)
    typecheck.check_option_type("delay", 42, float)
    typecheck.check_option_type("delay", 0.5, float)
    with pytest.raises(TypeError):
        typecheck.check_option_type("delay", True, float)
    with pytest.raises(TypeError):
        typecheck.check_option_type("port", False, int)
    with pytest.raises(TypeError):
        typecheck.check_option_type("port", 1.5, int)
    with pytest.raises(TypeError, match="Expected <class 'str'> for host"):
        typecheck.check_option_type("host", None, str)


def test_check_union():
    typecheck.check_option_type("socket", None, Optional[str])
    typecheck.check_option_type("socket", "/run/d.sock", str | None)
    typecheck.check_option_type("x", "42", Union[int, str])
    with pytest.raises(TypeError):
        typecheck.check_option_type("socket", 3, Optional[str])


def test_typespec_to_str():
    assert typecheck.typespec_to_str(str) == "str"
    assert typecheck.typespec_to_str(float) == "float"
    assert typecheck.typespec_to_str(Optional[str]) == "optional str"
    assert typecheck.typespec_to_str(int | None) == "optional int"
    with pytest.raises(NotImplementedError):
        typecheck.typespec_to_str(dict)
    with pytest.raises(NotImplementedError):
        typecheck.typespec_to_str(Union[int, str])
