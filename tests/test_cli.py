import json

import pytest

from novella.cli import check_upload, derive_output_path, execute_translation, load_glossary
from novella.errors import NovellaError
from novella.structures import EchoConfig


def test_echo_translation_writes_aligned_output(tmp_path):
    source = tmp_path / "chapter.txt"
    source.write_text("こんにちは\n\nさようなら\n", encoding="utf-8")

    exit_code, message = execute_translation(
        input_file=str(source),
        output_file=None,
        config=EchoConfig(),
        glossary={},
        verbose=False,
        provider_debug=False,
    )

    assert exit_code == 0
    output = tmp_path / "chapter_en.txt"
    assert str(output) in message
    assert output.read_text(encoding="utf-8") == "こんにちは\n\nさようなら\n"


def test_missing_input_file(tmp_path):
    exit_code, message = execute_translation(
        input_file=str(tmp_path / "missing.txt"),
        output_file=None,
        config=EchoConfig(),
        glossary={},
        verbose=False,
        provider_debug=False,
    )

    assert exit_code == 1
    assert "not found" in message


def test_refuses_to_overwrite_input(tmp_path):
    source = tmp_path / "chapter.txt"
    source.write_text("a\n", encoding="utf-8")

    exit_code, _ = execute_translation(
        input_file=str(source),
        output_file=str(source),
        config=EchoConfig(),
        glossary={},
        verbose=False,
        provider_debug=False,
    )

    assert exit_code == 1


def test_load_glossary(tmp_path):
    path = tmp_path / "glossary.json"
    path.write_text(json.dumps({"アリス": "Alice"}, ensure_ascii=False), encoding="utf-8")

    assert load_glossary(str(path)) == {"アリス": "Alice"}
    assert load_glossary(None) == {}


def test_invalid_glossary(tmp_path):
    path = tmp_path / "glossary.json"
    path.write_text(json.dumps(["not", "a", "mapping"]), encoding="utf-8")

    with pytest.raises(NovellaError):
        load_glossary(str(path))


def test_derive_output_path(tmp_path):
    assert derive_output_path(tmp_path / "vol1.txt") == tmp_path / "vol1_en.txt"


def test_undecodable_input_fails_cleanly(tmp_path):
    source = tmp_path / "chapter.txt"
    source.write_bytes(b"\xff\xfe\xfa bad\n")

    exit_code, message = execute_translation(
        input_file=str(source),
        output_file=None,
        config=EchoConfig(),
        glossary={},
        verbose=False,
        provider_debug=False,
    )

    assert exit_code == 1
    assert "Could not read" in message
    assert not (tmp_path / "chapter_en.txt").exists()


@pytest.mark.asyncio
async def test_check_upload_reports_refusal(capsys):
    assert await check_upload(EchoConfig(), debug=False) == 1
    assert "Upload not allowed for echo." in capsys.readouterr().out
