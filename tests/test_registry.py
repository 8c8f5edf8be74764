import threading

import pytest

from specline import AuthoringError, MatcherNotFoundError, MatcherRegistry, assert_condition
from specline.registry import get_registry


def _always(passed):
    return lambda e: assert_condition(e, passed, "pos", "neg")


def test_register_and_resolve():
    reg = MatcherRegistry()
    fn = _always(True)
    reg.register("to_pass", fn)

    assert reg.resolve("to_pass") is fn
    assert "to_pass" in reg
    assert reg.names() == ["to_pass"]


def test_names_are_case_sensitive():
    reg = MatcherRegistry()
    reg.register("toBe", _always(True))

    with pytest.raises(MatcherNotFoundError):
        reg.resolve("tobe")


def test_reregistration_overwrites():
    reg = MatcherRegistry()
    first, second = _always(True), _always(False)
    reg.register("m", first)
    reg.register("m", second)

    assert reg.resolve("m") is second
    assert len(reg) == 1


def test_resolve_unknown_lists_available():
    reg = MatcherRegistry()
    reg.register("to_a", _always(True))

    with pytest.raises(MatcherNotFoundError, match="to_a") as exc_info:
        reg.resolve("to_b")
    assert exc_info.value.name == "to_b"
    assert isinstance(exc_info.value, AuthoringError)


@pytest.mark.parametrize("name", ["", "_private", None])
def test_register_rejects_bad_names(name):
    with pytest.raises(AuthoringError):
        MatcherRegistry().register(name, _always(True))


def test_register_rejects_non_callable():
    with pytest.raises(AuthoringError, match="callable"):
        MatcherRegistry().register("m", 42)


def test_unregister():
    reg = MatcherRegistry()
    reg.register("m", _always(True))
    reg.unregister("m")

    assert "m" not in reg
    with pytest.raises(MatcherNotFoundError):
        reg.unregister("m")


def test_copy_is_independent():
    reg = MatcherRegistry()
    reg.register("m", _always(True))
    clone = reg.copy()
    clone.register("extra", _always(True))

    assert "extra" not in reg
    assert "m" in clone


def test_default_registry_holds_builtins():
    reg = get_registry()

    assert reg is get_registry()
    for name in ("to_be", "to_equal", "to_be_close_to", "to_be_between", "to_throw", "to_throw_error"):
        assert name in reg


def test_concurrent_registration_and_resolution():
    reg = MatcherRegistry()
    reg.register("stable", _always(True))
    errors = []

    def writer(i):
        for j in range(200):
            reg.register(f"m{i}_{j}", _always(True))

    def reader():
        for _ in range(200):
            try:
                reg.resolve("stable")
            except Exception as e:  # pragma: no cover - failure path
                errors.append(e)

    threads = [threading.Thread(target=writer, args=(i,)) for i in range(3)]
    threads += [threading.Thread(target=reader) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(reg) == 601
