#!/usr/bin/env python3
"""
Storage Test Script

This script tests the location history log and its CSV export.

Usage:
    python scripts/test_storage.py              # Run all tests
    pytest scripts/test_storage.py              # Run under pytest
"""

import sys
import os
import tempfile
from pathlib import Path

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from fixtrack.location import Fix, Provider
from fixtrack.storage import (
    HistoryStore,
    CsvExporter,
    PersistenceError,
    ExportError,
    EMPTY_HISTORY_MESSAGE,
    format_record,
    parse_history,
    render_csv,
)


HEADER = "Fecha,Hora,Latitud,Longitud,Proveedor,Precision (m),Simulado"


def print_header(title: str):
    """Print a formatted header"""
    print("\n" + "=" * 60)
    print(f"  {title}")
    print("=" * 60)


def print_result(name: str, success: bool, message: str = ""):
    """Print test result"""
    status = "[PASS]" if success else "[FAIL]"
    color = "\033[92m" if success else "\033[91m"
    reset = "\033[0m"
    print(f"  {color}{status}{reset} {name}")
    if message:
        print(f"         {message}")


def make_fix(lat=19.4326, lon=-99.1332, accuracy=5.0, provider=Provider.GPS,
             is_mock=False, timestamp=1700000000000):
    return Fix(latitude=lat, longitude=lon, accuracy=accuracy,
               provider=provider, is_mock=is_mock, timestamp=timestamp)


def test_record_format():
    """Test the history block layout"""
    print_header("Record Format")

    fix = make_fix(accuracy=4.26, is_mock=True, provider=Provider.NETWORK)
    lines = format_record(fix).splitlines()

    assert lines[0] == "=" * 40
    assert lines[1].startswith("Registro de Ubicación - ")
    assert lines[2] == "=" * 40
    assert lines[3] == f"Fecha y Hora: {fix.formatted_datetime()}"
    assert lines[4] == "Latitud: 19.4326"
    assert lines[5] == "Longitud: -99.1332"
    assert lines[6] == "Proveedor: Red"
    assert lines[7] == "Precisión: 4.3 metros"
    assert lines[8] == "Ubicación Simulada: Sí"
    assert lines[9] == "=" * 40
    assert lines[10] == ""
    print_result("Tagged fields", True)


def test_append_and_read_all(tmp_path):
    """Test append-then-read round trip"""
    print_header("Append / Read All")

    store = HistoryStore(tmp_path / "nested" / "location_history.txt")
    assert store.read_all() == EMPTY_HISTORY_MESSAGE
    assert not store.exists
    print_result("Missing log reads as empty message", True)

    fixes = [make_fix(lat=10.0 + i, lon=-20.0 - i, accuracy=float(i), timestamp=1700000000000 + i * 1000)
             for i in range(5)]
    for fix in fixes:
        store.append(fix)

    content = store.read_all()
    assert content.count("Registro de Ubicación - ") == len(fixes)

    positions = [content.index(f"Latitud: {fix.latitude}\n") for fix in fixes]
    assert positions == sorted(positions)

    for fix in fixes:
        assert f"Longitud: {fix.longitude}\n" in content
        assert f"Precisión: {fix.accuracy:.1f} metros\n" in content
        assert f"Fecha y Hora: {fix.formatted_datetime()}\n" in content
    print_result("Blocks preserved in order", True, f"{len(fixes)} blocks")


def test_append_failure(tmp_path):
    """Test that append failures surface as PersistenceError"""
    print_header("Append Failure")

    blocker = tmp_path / "not_a_dir"
    blocker.write_text("occupied")
    store = HistoryStore(blocker / "location_history.txt")

    with pytest.raises(PersistenceError):
        store.append(make_fix())
    assert blocker.read_text() == "occupied"
    print_result("I/O error reported", True)


def test_export_single_record(tmp_path):
    """Test the export of one well-formed record"""
    print_header("Export Single Record")

    store = HistoryStore(tmp_path / "location_history.txt")
    fix = make_fix()
    store.append(fix)

    path = CsvExporter(store, tmp_path / "exports").export()
    assert path is not None
    assert path.name.startswith("location_history_")
    assert path.suffix == ".csv"

    date, time_of_day = fix.formatted_datetime().split(" ")
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines == [HEADER, f"{date},{time_of_day},19.4326,-99.1332,GPS,5.0,No"]
    print_result("Header and row", True, lines[1])


def test_export_mock_flag_rows():
    """Test that both mock tokens terminate their row"""
    print_header("Mock Flag Rows")

    text = format_record(make_fix(is_mock=True)) + format_record(make_fix(is_mock=False))
    rows = parse_history(text)

    assert len(rows) == 2
    assert rows[0][-1] == "Sí"
    assert rows[1][-1] == "No"
    assert all(len(row) == 7 for row in rows)

    document = render_csv(text)
    assert document.endswith("No\n")
    assert document.count("\n") == 3
    print_result("Two-valued token per row", True)


def test_export_idempotent(tmp_path):
    """Test exporting twice from an unchanged log"""
    print_header("Export Idempotence")

    store = HistoryStore(tmp_path / "location_history.txt")
    for i in range(3):
        store.append(make_fix(lat=1.5 * i, is_mock=bool(i % 2)))

    exporter = CsvExporter(store, tmp_path / "exports")
    first = exporter.export().read_text(encoding="utf-8")
    second = exporter.export().read_text(encoding="utf-8")

    assert first == second
    assert len(first.splitlines()) == 4
    print_result("Identical rows", True)


def test_export_lenient_parsing():
    """Test best-effort parsing of malformed logs"""
    print_header("Lenient Parsing")

    text = "\n".join([
        "========================================",
        "Fecha y Hora: 01/02/2024 10:20:30",
        "Latitud: 1.0",
        "Proveedor: GPS",
        "Precisión: 3.0 metros",
        "Ubicación Simulada: No",
        "garbage line",
        "",
        "Longitud: 9.0",
        "Latitud: 8.0",
        "Ubicación Simulada: Sí",
        "Fecha y Hora: 03/04/2024 11:22:33",
        "Latitud: 7.0",
    ])

    rows = parse_history(text)
    assert rows[0] == ["01/02/2024", "10:20:30", "1.0", "GPS", "3.0", "No"]
    assert rows[1] == ["9.0", "8.0", "Sí"]
    assert rows[2] == ["03/04/2024", "11:22:33", "7.0"]
    print_result("Short rows kept", True, f"{len(rows)} rows")

    assert parse_history("") == []
    assert render_csv("") == HEADER + "\n"


def test_export_without_history(tmp_path):
    """Test export when the log does not exist"""
    print_header("Export Without History")

    store = HistoryStore(tmp_path / "location_history.txt")
    exporter = CsvExporter(store, tmp_path / "exports")

    assert exporter.export() is None
    assert not (tmp_path / "exports").exists()
    print_result("Returns None", True)


def test_export_write_failure(tmp_path):
    """Test export failures surface as ExportError"""
    print_header("Export Write Failure")

    store = HistoryStore(tmp_path / "location_history.txt")
    store.append(make_fix())

    blocker = tmp_path / "exports"
    blocker.write_text("occupied")

    with pytest.raises(ExportError):
        CsvExporter(store, blocker).export()
    print_result("ExportError raised", True)


def main():
    print("\n" + "=" * 60)
    print("  Fix Tracker - Storage Test Suite")
    print("=" * 60)

    tests = [
        ("Record Format", test_record_format, False),
        ("Append / Read All", test_append_and_read_all, True),
        ("Append Failure", test_append_failure, True),
        ("Export Single Record", test_export_single_record, True),
        ("Mock Flag Rows", test_export_mock_flag_rows, False),
        ("Export Idempotence", test_export_idempotent, True),
        ("Lenient Parsing", test_export_lenient_parsing, False),
        ("Export Without History", test_export_without_history, True),
        ("Export Write Failure", test_export_write_failure, True),
    ]

    results = []
    for name, test, needs_dir in tests:
        try:
            if needs_dir:
                with tempfile.TemporaryDirectory() as tmp:
                    test(Path(tmp))
            else:
                test()
            results.append((name, True))
        except Exception as e:
            print_result(name, False, str(e))
            results.append((name, False))

    # Summary
    print_header("Test Summary")
    passed = sum(1 for _, r in results if r)
    total = len(results)
    print(f"\n  Passed: {passed}/{total}")

    for name, result in results:
        status = "\033[92mPASS\033[0m" if result else "\033[91mFAIL\033[0m"
        print(f"    {name}: {status}")

    print("\n")
    return 0 if passed == total else 1


if __name__ == '__main__':
    sys.exit(main())
