import pytest

from pureescpos.emulation.codepages import (
    DEFAULT_CODEPAGE,
    PLACEHOLDER,
    TABLE_CODEPAGES,
    Codepage,
    CodepageTable,
    parse_codepage,
)


@pytest.fixture
def table():
    return CodepageTable()


class TestCodepageTable:
    def test_default_is_auto(self, table):
        assert table.default is Codepage.AUTO
        assert DEFAULT_CODEPAGE is Codepage.AUTO
        assert table.name(None) == "utf-8"

    def test_ascii_identical_everywhere(self, table):
        for cp in Codepage:
            assert table.decode(cp, b"Total 12.50") == "Total 12.50"

    @pytest.mark.parametrize(
        "codepage,data,expected",
        [
            (Codepage.CP437, b"\x93\x94", "ôö"),
            (Codepage.CP850, b"\x93\x94", "ôö"),
            (Codepage.WPC1252, b"\x93\x94", "“”"),
            (Codepage.WPC1252, b"\x80", "€"),
            (Codepage.CP858, b"\xd5", "€"),
            (Codepage.CP850, b"\xd5", "ı"),
            (Codepage.CP866, b"\x80", "А"),
        ],
    )
    def test_decode_high_bytes(self, table, codepage, data, expected):
        assert table.decode(codepage, data) == expected

    def test_every_table_has_one_char_per_byte(self, table):
        data = bytes(range(256))
        for cp in TABLE_CODEPAGES:
            decoded = table.decode(cp, data)
            assert len(decoded) == 256

    def test_undefined_byte_decodes_to_placeholder(self, table):
        # 0x81 is unassigned in Windows-1252
        assert table.decode(Codepage.WPC1252, b"\x81") == PLACEHOLDER

    def test_unknown_id_uses_default(self, table):
        assert table.decode(99, b"\x93") == table.decode(Codepage.AUTO, b"\x93")
        assert table.resolve(99) is Codepage.AUTO
        assert table.resolve(None) is Codepage.AUTO

    def test_unknown_id_uses_configured_default(self):
        table = CodepageTable(Codepage.CP437)
        assert table.decode(42, b"\x93") == "ô"
        assert table.name(42) == "cp437"

    def test_is_supported(self):
        assert CodepageTable.is_supported(0)
        assert CodepageTable.is_supported(16)
        assert not CodepageTable.is_supported(1)
        assert not CodepageTable.is_supported(255)

    def test_empty_input(self, table):
        assert table.decode(Codepage.CP437, b"") == ""

    def test_table_is_256_entries(self, table):
        assert len(table.table(Codepage.CP852)) == 256

    def test_repr(self, table):
        assert repr(table) == "CodepageTable(default=AUTO)"


class TestAutoMode:
    def test_valid_utf8_decodes_as_utf8(self, table):
        assert table.decode(Codepage.AUTO, "Señor".encode("utf-8")) == "Señor"

    def test_invalid_utf8_falls_back_to_windows_1252(self, table):
        assert table.decode(Codepage.AUTO, b"\x93\x94\x80") == "“”€"
        assert table.table(Codepage.AUTO) == table.table(Codepage.WPC1252)

    def test_not_selectable_by_esc_t(self):
        assert not CodepageTable.is_supported(Codepage.AUTO)
        assert Codepage.AUTO not in TABLE_CODEPAGES

    def test_table_default_keeps_tables_strict(self):
        table = CodepageTable(Codepage.CP437)
        assert table.decode(Codepage.AUTO, "é".encode("utf-8")) == "├⌐"


class TestParseCodepage:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (Codepage.CP850, Codepage.CP850),
            (2, Codepage.CP850),
            ("2", Codepage.CP850),
            ("cp850", Codepage.CP850),
            ("CP-437", Codepage.CP437),
            ("wpc1252", Codepage.WPC1252),
            ("windows-1252", Codepage.WPC1252),
            ("cp1252", Codepage.WPC1252),
            (" 16 ", Codepage.WPC1252),
            ("auto", Codepage.AUTO),
            ("utf-8", Codepage.AUTO),
            ("UTF8", Codepage.AUTO),
        ],
    )
    def test_accepted_values(self, value, expected):
        assert parse_codepage(value) is expected

    @pytest.mark.parametrize("value", [1, "7", "latin9", ""])
    def test_rejected_values(self, value):
        with pytest.raises(ValueError):
            parse_codepage(value)
