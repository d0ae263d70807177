import pytest

from fakes import FakeKernels
from cellsearch.kernels.base import CellSearchKernels
from cellsearch.kernels.loader import KernelLoadError, load_kernels, missing_methods
from cellsearch.util.errors import ConfigurationError


def test_load_class_by_import_path() -> None:
    backend = load_kernels("fakes:FakeKernels")
    assert isinstance(backend, FakeKernels)
    assert isinstance(backend, CellSearchKernels)


def test_incomplete_backend_is_rejected() -> None:
    with pytest.raises(KernelLoadError, match="sss_detect"):
        load_kernels("fakes:IncompleteKernels")


def test_missing_methods_lists_every_gap() -> None:
    assert missing_methods(object()) == [
        "correlate",
        "sss_detect",
        "fine_offset_estimate",
        "extract_grid",
        "compensate_grid",
        "decode_mib",
    ]
    assert missing_methods(FakeKernels()) == []


@pytest.mark.parametrize("spec", ["", "no_such_module_xyz:Kernels", "fakes:NoSuchKernels", "not-an-entry-point"])
def test_unresolvable_backends(spec) -> None:
    with pytest.raises(KernelLoadError):
        load_kernels(spec)


def test_load_error_is_a_configuration_error() -> None:
    assert issubclass(KernelLoadError, ConfigurationError)
