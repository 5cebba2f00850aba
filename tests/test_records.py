import pytest

from spellcrawl.crawler.records import Record, RecordSourceError, load_records, parse_records


def write_csv(tmp_path, content: str):
    path = tmp_path / "urls.csv"
    path.write_text(content, encoding="utf-8")
    return str(path)


def test_header_is_skipped_and_fields_trimmed(tmp_path) -> None:
    path = write_csv(tmp_path, "title,url\n Home , https://example.com/ \nDocs,http://docs.example.com/a?b=1\n")

    assert load_records(path) == [
        Record(label="Home", target="https://example.com/"),
        Record(label="Docs", target="http://docs.example.com/a?b=1"),
    ]


def test_header_only_file_has_no_records(tmp_path) -> None:
    assert load_records(write_csv(tmp_path, "title,url\n")) == []


def test_blank_lines_are_ignored(tmp_path) -> None:
    path = write_csv(tmp_path, "title,url\n\nHome,https://example.com/\n\n")

    assert load_records(path) == [Record(label="Home", target="https://example.com/")]


def test_quoted_label_with_comma(tmp_path) -> None:
    path = write_csv(tmp_path, 'title,url\n"Shop, main",https://shop.example.com/\n')

    assert load_records(path)[0].label == "Shop, main"


def test_duplicate_targets_are_kept(tmp_path) -> None:
    path = write_csv(tmp_path, "title,url\nA,https://example.com/\nB,https://example.com/\n")

    assert [record.label for record in load_records(path)] == ["A", "B"]


@pytest.mark.parametrize("row", [
    "Home",
    "Home,https://example.com/,extra",
    ",https://example.com/",
    "Home,",
    "Home,example.com",
    "Home,ftp://example.com/file",
])
def test_malformed_rows_are_rejected(row: str) -> None:
    with pytest.raises(RecordSourceError):
        parse_records([["title", "url"], row.split(",")])


def test_error_names_the_line(tmp_path) -> None:
    path = write_csv(tmp_path, "title,url\nHome,https://example.com/\nBroken\n")

    with pytest.raises(RecordSourceError, match=r"urls.csv:3"):
        load_records(path)


def test_missing_file(tmp_path) -> None:
    with pytest.raises(RecordSourceError, match="not found"):
        load_records(str(tmp_path / "nope.csv"))


def test_undecodable_file(tmp_path) -> None:
    path = tmp_path / "urls.csv"
    path.write_bytes(b"title,url\n\xff\xfe\xfa,https://example.com/\n")

    with pytest.raises(RecordSourceError):
        load_records(str(path))


def test_records_are_immutable() -> None:
    record = Record(label="A", target="https://example.com/")

    with pytest.raises(AttributeError):
        record.label = "B"
