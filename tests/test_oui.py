import pytest
import requests

from gen_ula import oui
from gen_ula.errors import AcquisitionError, ValidationError, VendorNotFoundError
from gen_ula.oui import OuiTable, load_oui_table, lookup_vendor, parse_oui_text

OUI_TXT = """\
OUI/MA-L                                                    Organization
company_id                                                  Organization
                                                            Address

00-0D-3A   (hex)\t\tMicrosoft Corp.
000D3A     (base 16)\t\tMicrosoft Corp.
\t\t\t\tOne Microsoft Way
\t\t\t\tRedmond  WA  98052
\t\t\t\tUS

AC-DE-48   (hex)\t\tPrivate
ACDE48     (base 16)\t\tPrivate

  080020     (base 16)\t\tSUN MICROSYSTEMS INC.
"""


def test_parse_oui_text():
    table = parse_oui_text(OUI_TXT.splitlines())
    assert len(table) == 3
    assert table.vendor("000D3A") == "Microsoft Corp."
    assert table.vendor("acde48") == "Private"
    assert table.vendor("080020") == "SUN MICROSYSTEMS INC."


def test_parse_ignores_crlf_line_endings():
    table = parse_oui_text("000D3A     (base 16)\t\tMicrosoft Corp.\r\n".splitlines())
    assert table.vendor("000D3A") == "Microsoft Corp."


def test_lookup_vendor_is_case_insensitive():
    table = OuiTable({"000D3A": "Microsoft Corp."})
    assert lookup_vendor("000d3a", table) == "Microsoft Corp."
    assert lookup_vendor("00:0D:3A", table) == "Microsoft Corp."


def test_lookup_vendor_miss():
    with pytest.raises(VendorNotFoundError) as exc:
        lookup_vendor("010203", OuiTable({"000D3A": "Microsoft Corp."}))
    assert exc.value.oui == "010203"


def test_lookup_vendor_bad_prefix():
    with pytest.raises(ValidationError):
        lookup_vendor("000d3", OuiTable({}))


def test_load_uses_cached_file(tmp_path, monkeypatch):
    path = tmp_path / "oui.txt"
    path.write_text(OUI_TXT, encoding="utf-8")

    def no_network(*args, **kwargs):
        raise AssertionError("should not download")

    monkeypatch.setattr(oui, "download_oui_text", no_network)
    table = load_oui_table(path)
    assert table.vendor("000D3A") == "Microsoft Corp."


def test_load_downloads_and_caches(tmp_path, monkeypatch):
    path = tmp_path / "oui.txt"
    calls = []

    def fake_download(url, timeout=30.0):
        calls.append(url)
        return OUI_TXT

    monkeypatch.setattr(oui, "download_oui_text", fake_download)
    table = load_oui_table(path, url="http://example.invalid/oui.txt")
    assert calls == ["http://example.invalid/oui.txt"]
    assert path.read_text(encoding="utf-8") == OUI_TXT
    assert len(table) == 3


def test_load_refresh_redownloads(tmp_path, monkeypatch):
    path = tmp_path / "oui.txt"
    path.write_text("stale\n", encoding="utf-8")
    monkeypatch.setattr(oui, "download_oui_text", lambda url, timeout=30.0: OUI_TXT)
    assert len(load_oui_table(path, refresh=True)) == 3


def test_load_empty_registry(tmp_path):
    path = tmp_path / "oui.txt"
    path.write_text("nothing here\n", encoding="utf-8")
    with pytest.raises(AcquisitionError):
        load_oui_table(path)


def test_download_failure_is_acquisition_error(monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("no route to host")

    monkeypatch.setattr(oui.requests, "get", boom)
    with pytest.raises(AcquisitionError) as exc:
        oui.download_oui_text("http://example.invalid/oui.txt")
    assert "no route to host" in str(exc.value)
    assert isinstance(exc.value.__cause__, requests.ConnectionError)


def test_manuf_registry(monkeypatch):
    class FakeParser:
        def __init__(self, manuf_name=None):
            self.manuf_name = manuf_name

        def get_manuf_long(self, mac):
            return "Microsoft Corporation" if mac == "00:0D:3A:00:00:00" else None

        def get_manuf(self, mac):
            return None

    monkeypatch.setattr(oui.manuf, "MacParser", FakeParser)
    registry = oui.ManufRegistry()
    assert lookup_vendor("000d3a", registry) == "Microsoft Corporation"
    with pytest.raises(VendorNotFoundError):
        lookup_vendor("010203", registry)


def test_bad_download_is_not_cached(tmp_path, monkeypatch):
    path = tmp_path / "oui.txt"
    monkeypatch.setattr(oui, "download_oui_text", lambda url, timeout=30.0: "<html>blocked</html>")
    with pytest.raises(AcquisitionError):
        load_oui_table(path)
    assert not path.exists()
    assert list(tmp_path.iterdir()) == []

    monkeypatch.setattr(oui, "download_oui_text", lambda url, timeout=30.0: OUI_TXT)
    assert len(load_oui_table(path)) == 3
    assert path.read_text(encoding="utf-8") == OUI_TXT


def test_bad_refresh_keeps_old_cache(tmp_path, monkeypatch):
    path = tmp_path / "oui.txt"
    path.write_text(OUI_TXT, encoding="utf-8")
    monkeypatch.setattr(oui, "download_oui_text", lambda url, timeout=30.0: "<html>blocked</html>")
    with pytest.raises(AcquisitionError):
        load_oui_table(path, refresh=True)
    assert path.read_text(encoding="utf-8") == OUI_TXT


def test_empty_cache_suggests_refresh(tmp_path):
    path = tmp_path / "oui.txt"
    path.write_text("<html>blocked</html>", encoding="utf-8")
    with pytest.raises(AcquisitionError) as exc:
        load_oui_table(path)
    assert "--refresh" in str(exc.value)
