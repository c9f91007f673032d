import polars as pl
import pytest

from taxomatch.data_handler import parse_delimited_text, read_input_file, read_names, write_output_file


def test_parse_delimited_text_reads_strings():
    text = "taxonID\tScientificName\tAuthor\n1\tAlexandrium minutum\tHalim\n2\tDinophysis acuta\t\n"
    df = parse_delimited_text(text)

    assert df.columns == ["taxonID", "ScientificName", "Author"]
    assert df.schema["taxonID"] == pl.Utf8
    assert df["taxonID"].to_list() == ["1", "2"]
    assert df["Author"].to_list() == ["Halim", None]


def test_parse_delimited_text_keeps_quotes():
    df = parse_delimited_text('name\n"Alexandrium" minutum\n')
    assert df["name"].to_list() == ['"Alexandrium" minutum']


class TestReadNames:

    def test_plain_text_one_name_per_line(self, tmp_path):
        path = tmp_path / "names.txt"
        path.write_text("Alexandrium minutum\n\nDinophysis acuta  \n", encoding="utf-8")
        assert read_names(path) == ["Alexandrium minutum", "Dinophysis acuta"]

    def test_csv_detects_name_column(self, tmp_path):
        path = tmp_path / "names.csv"
        path.write_text("id,scientific_name\n1,Alexandrium minutum\n2,Dinophysis acuta\n", encoding="utf-8")
        assert read_names(path) == ["Alexandrium minutum", "Dinophysis acuta"]

    def test_explicit_column(self, tmp_path):
        path = tmp_path / "names.csv"
        path.write_text("reported,checked\nAlexandrium minutun,Alexandrium minutum\n", encoding="utf-8")
        assert read_names(path, column="reported") == ["Alexandrium minutun"]

    def test_no_name_column(self, tmp_path):
        path = tmp_path / "names.csv"
        path.write_text("id,count\n1,2\n", encoding="utf-8")
        with pytest.raises(ValueError):
            read_names(path)


def test_unsupported_input_format(tmp_path):
    path = tmp_path / "names.xlsx"
    path.write_bytes(b"")
    with pytest.raises(ValueError, match="Unsupported input format"):
        read_input_file(path)


class TestWriteOutputFile:

    @pytest.fixture
    def df(self):
        return pl.DataFrame({
            "reported_ScientificName": ["Alexandrium minutun", "Nonexistus fakeus"],
            "corrected_ScientificName": ["Alexandrium minutum", None],
        })

    def test_csv(self, tmp_path, df):
        output = tmp_path / "out.csv"
        write_output_file(df, output)
        assert pl.read_csv(output).equals(df)

    def test_tsv_and_parquet(self, tmp_path, df):
        write_output_file(df, tmp_path / "out.tsv")
        write_output_file(df, tmp_path / "out.bin", output_format="parquet")

        assert read_input_file(tmp_path / "out.tsv").equals(df)
        assert pl.read_parquet(tmp_path / "out.bin").equals(df)

    def test_unsupported_format(self, tmp_path, df):
        with pytest.raises(ValueError, match="Unsupported output format"):
            write_output_file(df, tmp_path / "out.json")
