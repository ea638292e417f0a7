import pytest

from parsely.cli import build_parser, main, parse_tags


def test_chop_arguments():
    args = build_parser().parse_args([
        "chop", "https://example.com/a", "-b", "3", "--validate-only", "-t", "quick, pasta,", "-y",
    ])

    assert args.urls == ["https://example.com/a"]
    assert args.batch_size == 3
    assert args.validate_only
    assert args.tags == ["quick", "pasta"]
    assert args.yes


def test_scan_arguments():
    args = build_parser().parse_args(["scan", "a.jpg", "b.jpg", "--single", "-l", "french"])

    assert args.files == ["a.jpg", "b.jpg"]
    assert args.single
    assert args.language == "french"
    assert args.tags == []


def test_scan_requires_files():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["scan"])


def test_parse_tags():
    assert parse_tags(" a , ,b ") == ["a", "b"]


def test_chop_without_urls_fails():
    assert main(["chop"]) == 1


def test_missing_store_settings_fail(monkeypatch):
    monkeypatch.setattr("parsely.config.load_dotenv", lambda: None)
    monkeypatch.delenv("NOTION_TOKEN", raising=False)
    monkeypatch.delenv("NOTION_DATABASE_ID", raising=False)

    assert main(["chop", "https://example.com/a"]) == 1
