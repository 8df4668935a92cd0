from __future__ import annotations

from dataclasses import replace

import pytest

from furi.build import parse_furigana_line
from furi.dictionary import Dictionary
from furi.nlp import Token

SOURCE_LINES = [
    "神|しん|0:しん",
    "神|かみ|0:かみ",
    "神|じん|0:じん",
    "光|こう|0:こう",
    "光|ひかり|0:ひかり",
    "宮崎|みやざき|0:みや;1:ざき",
    "美味しい|おいしい|0-1:おい",
    "千|せん|0:せん",
    "千尋|ちひろ|0:ち;1:ひろ",
    "神隠し|かみかくし|0:かみ;1:かく",
    "言う|いう|0:い",
    "来る|くる|0:く",
]

COMMON = {("神", "かみ"), ("光", "ひかり"), ("言う", "いう"), ("来る", "くる")}

# Analyzer output for the texts used across the tests: (surface, reading[, lemma]).
TOKENS = {
    "神は「光あれ」と言われた。すると光があった。": [
        ("神", "カミ"),
        ("は", "ハ"),
        ("「", ""),
        ("光", "ヒカリ"),
        ("あれ", "アレ"),
        ("」", ""),
        ("と", "ト"),
        ("言わ", "イワ", "言う"),
        ("れ", "レ"),
        ("た", "タ"),
        ("。", ""),
        ("すると", "スルト"),
        ("光", "ヒカリ"),
        ("が", "ガ"),
        ("あっ", "アッ"),
        ("た", "タ"),
        ("。", ""),
    ],
    "宮崎のマンゴーとても美味しいです。": [
        ("宮崎", "ミヤザキ"),
        ("の", "ノ"),
        ("マンゴー", "マンゴー"),
        ("とても", "トテモ"),
        ("美味しい", "オイシイ"),
        ("です", "デス"),
        ("。", ""),
    ],
    "千と千尋の神隠し": [
        ("千", "セン"),
        ("と", "ト"),
        ("千尋", "チヒロ"),
        ("の", "ノ"),
        ("神隠し", "カミカクシ"),
    ],
    "蘭丸が来た": [
        ("蘭丸", "ランマル"),
        ("が", "ガ"),
        ("来", "キ"),
        ("た", "タ"),
    ],
}


class StubAnalyzer:
    def __init__(self, tokens: dict[str, list[tuple[str, ...]]] | None = None) -> None:
        self._tokens = TOKENS if tokens is None else tokens

    def tokenize(self, text: str) -> list[Token]:
        pairs = self._tokens[text]
        tokens: list[Token] = []
        pos = 0
        for surface, reading, *lemma in pairs:
            tokens.append(
                Token(
                    surface=surface,
                    start=pos,
                    end=pos + len(surface),
                    reading=reading,
                    lemma=lemma[0] if lemma else None,
                )
            )
            pos += len(surface)
        return tokens


def _entries():
    for line in SOURCE_LINES:
        entry = parse_furigana_line(line)
        if (entry.text, entry.reading) in COMMON:
            entry = replace(entry, text_common=True, reading_common=True)
        yield entry


@pytest.fixture
def dictionary() -> Dictionary:
    return Dictionary(_entries())


@pytest.fixture
def analyzer() -> StubAnalyzer:
    return StubAnalyzer()
