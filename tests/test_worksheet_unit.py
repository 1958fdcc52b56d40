import pytest

from symsheet import Worksheet, WorksheetError
from symsheet.statement import FALSE_WARNING
from symsheet.store import SymbolEntry


@pytest.fixture
def sheet() -> Worksheet:
    return Worksheet({"default_statements": 0})


def test_new_worksheet_has_default_statements() -> None:
    sheet = Worksheet()
    assert [s.id for s in sheet.statements] == [1, 2]
    assert all(s.markup == "" for s in sheet.statements)
    assert len(sheet.store) == 0


def test_statement_ids_are_unique(sheet: Worksheet) -> None:
    first = sheet.add_statement("x = 1")
    sheet.remove_statement(first.id)
    second = sheet.add_statement("x = 2")
    assert second.id != first.id


def test_adding_a_statement_registers_symbols(sheet: Worksheet) -> None:
    sheet.add_statement("a + b = c")
    assert list(sheet.store) == ["a", "b", "c"]


def test_value_entry_solves_and_chains(sheet: Worksheet) -> None:
    sheet.add_statement("x + y = 5")
    sheet.add_statement("z = 2y")
    sheet.enter_value("x", "2")

    assert sheet.store.get("x") == SymbolEntry(2.0, True)
    assert sheet.store.get("y").value == pytest.approx(3.0)
    assert sheet.store.get("z").value == pytest.approx(6.0)
    assert sheet.store.get("z").given is False
    assert sheet.diagnostic == ""


def test_changing_a_given_heals_and_flags_downstream(sheet: Worksheet) -> None:
    first = sheet.add_statement("x + y = 5")
    second = sheet.add_statement("z = 2y")
    sheet.enter_value("x", "2")
    sheet.enter_value("x", "4")

    assert sheet.store.get("y").value == pytest.approx(1.0)
    assert first.warning == ""
    # z = 6 and y = 1 are both derived, so the second statement is only flagged.
    assert second.warning == FALSE_WARNING
    assert sheet.store.get("z").value == pytest.approx(6.0)


def test_given_values_conflict(sheet: Worksheet) -> None:
    stmt = sheet.add_statement("x + y = 5")
    sheet.enter_value("x", "2")
    sheet.enter_value("y", "10")
    assert stmt.warning == FALSE_WARNING
    assert sheet.store.get("y") == SymbolEntry(10.0, True)


def test_erasing_a_value(sheet: Worksheet) -> None:
    sheet.add_statement("x + y = z")
    sheet.enter_value("x", "2")
    sheet.enter_value("x", "")
    assert sheet.store.get("x") == SymbolEntry(None, False)


@pytest.mark.parametrize("text", ["abc", "inf", "nan"])
def test_invalid_entry_clears_value(sheet: Worksheet, text: str) -> None:
    sheet.add_statement("x = 1")
    sheet.enter_value("x", text)
    # The statement re-solves x right away once it is no longer given.
    assert sheet.store.get("x") == SymbolEntry(1.0, False)


def test_set_given(sheet: Worksheet) -> None:
    sheet.add_statement("x + y = 5")
    sheet.enter_value("x", "2")
    sheet.set_given("x", False)
    assert sheet.store.get("x") == SymbolEntry(2.0, False)


def test_unknown_symbol(sheet: Worksheet) -> None:
    with pytest.raises(WorksheetError, match="Unknown symbol 'q'"):
        sheet.enter_value("q", "1")


def test_unknown_statement(sheet: Worksheet) -> None:
    with pytest.raises(WorksheetError):
        sheet.edit_statement(42, "x = 1")
    with pytest.raises(WorksheetError):
        sheet.remove_statement(42)


def test_remove_statement_drops_its_symbols(sheet: Worksheet) -> None:
    sheet.add_statement("x = 1")
    other = sheet.add_statement("y + z = 2")
    sheet.remove_statement(other.id)
    assert list(sheet.store) == ["x"]


def test_edit_statement_reparses(sheet: Worksheet) -> None:
    stmt = sheet.add_statement("x = 1")
    sheet.edit_statement(stmt.id, "2y = 8")
    assert stmt.symbols == {"y"}
    assert "x" not in sheet.store
    assert sheet.store.get("y").value == pytest.approx(4.0)


def test_apply_simplification(sheet: Worksheet) -> None:
    stmt = sheet.add_statement("2x + 3x")
    index = [s.name for s in stmt.simplifications].index("evaluate")
    sheet.apply_simplification(stmt.id, index)
    assert stmt.markup == "5*x"


def test_apply_simplification_bad_index(sheet: Worksheet) -> None:
    stmt = sheet.add_statement("x")
    with pytest.raises(WorksheetError):
        sheet.apply_simplification(stmt.id, 0)


def test_substitute(sheet: Worksheet) -> None:
    held = sheet.add_statement("x = y + 1")
    target = sheet.add_statement("x + 2 = 5")
    sheet.substitute(held.id, target.id)

    assert "y + 1" in target.markup
    assert target.markup.endswith("+ 2 = 5")
    assert target.symbols == {"y"}
    assert target.warning == ""
    assert sheet.store.get("y").value == pytest.approx(2.0)
    assert sheet.store.get("x").value == pytest.approx(3.0)


def test_substitute_requires_symbol_equation(sheet: Worksheet) -> None:
    held = sheet.add_statement("x + 1 = y")
    target = sheet.add_statement("x = 3")
    with pytest.raises(ValueError):
        sheet.substitute(held.id, target.id)


def test_substitute_into_blank_statement(sheet: Worksheet) -> None:
    held = sheet.add_statement("x = y + 1")
    blank = sheet.add_statement()
    with pytest.raises(ValueError):
        sheet.substitute(held.id, blank.id)


def test_propagation_stops_at_the_pass_cap() -> None:
    sheet = Worksheet({"default_statements": 0, "max_propagation_passes": 10})
    sheet.add_statement("a = b + 1")
    sheet.add_statement("b = a + 1")
    sheet.enter_value("a", "0")

    assert "did not settle after 10 passes" in sheet.diagnostic
    assert "b" in sheet.diagnostic
    assert sheet.propagate(names={"a"}) == 10


def test_propagate_reports_passes(sheet: Worksheet) -> None:
    sheet.add_statement("x + y = 5")
    sheet.add_statement("z = 2y")
    sheet.store.set_symbol("x", 2, True)
    assert sheet.propagate(names={"x"}) == 3
    assert sheet.propagate() == 1


def test_to_dict(sheet: Worksheet) -> None:
    sheet.add_statement("x + y = 5")
    sheet.enter_value("x", "2")
    data = sheet.to_dict()
    assert data["diagnostic"] == ""
    assert data["symbols"]["y"] == {"value": 3.0, "given": False}
    assert data["statements"][0]["markup"] == "x + y = 5"


def test_contradiction_that_cannot_be_resolved_is_flagged(sheet: Worksheet) -> None:
    stmt = sheet.add_statement("x y = 5")
    sheet.enter_value("x", "1")
    assert sheet.store.get("y").value == pytest.approx(5.0)

    sheet.enter_value("x", "0")
    assert stmt.warning == FALSE_WARNING
    assert sheet.store.get("y") == SymbolEntry(5.0, False)


def test_settled_pass_leaves_store_version_unchanged(sheet: Worksheet) -> None:
    sheet.add_statement("x + y = 5")
    sheet.enter_value("x", "2")
    version = sheet.store.version

    assert sheet.propagate() == 1
    assert sheet.store.version == version
