import pytest

from twik.twik_source import SourceSet, PosInfo, DEFAULT_SOURCE_NAME


@pytest.fixture
def sources():
    s = SourceSet()
    s.register("a.twik", "(x\ny)")
    s.register("b.twik", "zz")
    s.register("", "\n\nq")
    return s


def test_bases_are_disjoint_and_increasing(sources):
    a, b, c = sources.files
    assert a.base == 1
    assert b.base == a.end + 1 == 7
    assert c.base == b.end + 1 == 10


@pytest.mark.parametrize("pos, expected", [
    (1, PosInfo("a.twik", 1, 1)),
    (2, PosInfo("a.twik", 1, 2)),
    (4, PosInfo("a.twik", 2, 1)),
    (6, PosInfo("a.twik", 2, 3)),
    (7, PosInfo("b.twik", 1, 1)),
    (8, PosInfo("b.twik", 1, 2)),
    (9, PosInfo("b.twik", 1, 3)),
    (12, PosInfo("", 3, 1)),
])
def test_resolve_reports_the_owning_source(sources, pos, expected):
    assert sources.resolve(pos) == expected


def test_resolve_earlier_source_after_later_registrations():
    s = SourceSet()
    first = s.register("first", "one\ntwo")
    for i in range(5):
        s.register(f"later{i}", "x" * 50)
    info = s.resolve(first.pos(4))
    assert info == PosInfo("first", 2, 1)


def test_resolve_unknown_position_is_empty(sources):
    assert sources.resolve(0) == PosInfo()
    assert sources.resolve(1000) == PosInfo()
    assert sources.file_at(1000) is None


def test_posinfo_string_uses_default_name():
    assert str(PosInfo("rules.twik", 3, 7)) == "rules.twik:3:7:"
    assert str(PosInfo("", 1, 2)) == f"{DEFAULT_SOURCE_NAME}:1:2:"
    assert str(PosInfo("", 1, 2)) == "twik source:1:2:"


def test_register_keeps_every_record(sources):
    assert len(sources) == 3
    assert [f.name for f in sources.files] == ["a.twik", "b.twik", ""]
    assert sources.files[1].registry is sources
