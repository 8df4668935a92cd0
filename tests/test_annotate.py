from __future__ import annotations

import pytest

import importlib

annotate_module = importlib.import_module("furi.annotate")
from furi.annotate import Annotator
from furi.dictionary import default_dictionary, save_dictionary
from furi.document import Document, FuriganaSegment, PlainSegment
from furi.logging_utils import set_debug_logging
from furi.nlp import Token, TokenizationError
from furi.render import RenderOptions
from furi.select import get_selector

from conftest import TOKENS, StubAnalyzer


def _assert_covers(document: Document) -> None:
    assert document.base_text() == document.text
    cursor = 0
    for segment in document.segments:
        assert segment.text
        assert segment.start == cursor
        assert segment.end == cursor + len(segment.text)
        assert document.text[segment.start : segment.end] == segment.text
        cursor = segment.end
    assert cursor == len(document.text)


@pytest.mark.parametrize("text", sorted(TOKENS))
def test_segments_cover_input_exactly(dictionary, analyzer, text) -> None:
    document = Annotator(dictionary, analyzer=analyzer).annotate(text)
    _assert_covers(document)


def test_scenario_a_markdown_with_common_words(dictionary, analyzer) -> None:
    document = Annotator(dictionary, analyzer=analyzer).annotate(
        "神は「光あれ」と言われた。すると光があった。"
    )
    result = document.render("markdown", RenderOptions(gloss_common_words=True))
    assert result == "[神]{かみ}は「[光]{ひかり}あれ」と[言]{い}われた。すると[光]{ひかり}があった。"


def test_scenario_a_common_words_skipped_by_default(dictionary, analyzer) -> None:
    document = Annotator(dictionary, analyzer=analyzer).annotate(
        "神は「光あれ」と言われた。すると光があった。"
    )
    assert document.render("markdown") == "神は「光あれ」と言われた。すると光があった。"


def test_scenario_b_html_glosses_each_kanji(dictionary, analyzer) -> None:
    document = Annotator(dictionary, analyzer=analyzer).annotate("宮崎のマンゴーとても美味しいです。")
    result = document.render("html")
    assert result == (
        "<ruby>宮<rp>(</rp><rt>みや</rt><rp>)</rp></ruby>"
        "<ruby>崎<rp>(</rp><rt>ざき</rt><rp>)</rp></ruby>"
        "のマンゴーとても"
        "<ruby>美味<rp>(</rp><rt>おい</rt><rp>)</rp></ruby>"
        "しいです。"
    )


def test_scenario_c_latex_leaves_particles_alone(dictionary, analyzer) -> None:
    document = Annotator(dictionary, analyzer=analyzer).annotate("千と千尋の神隠し")
    result = document.render("latex", RenderOptions(gloss_common_words=True))
    assert result == (
        r"\ruby{千}{せん}と\ruby{千}{ち}\ruby{尋}{ひろ}の\ruby{神}{かみ}\ruby{隠}{かく}し"
    )


def test_scenario_d_unknown_word_uses_analyzer_reading(dictionary, analyzer) -> None:
    document = Annotator(dictionary, analyzer=analyzer).annotate("蘭丸が来た")
    furigana = document.furigana
    assert [(seg.text, seg.reading, seg.source) for seg in furigana] == [
        ("蘭丸", "らんまる", "analyzer"),
        ("来", "き", "analyzer"),
    ]
    assert document.render("markdown") == "[蘭丸]{らんまる}が[来]{き}た"


def test_scenario_e_katakana_readings(dictionary, analyzer) -> None:
    document = Annotator(dictionary, analyzer=analyzer).annotate(
        "神は「光あれ」と言われた。すると光があった。"
    )
    hiragana = document.render("markdown", RenderOptions(gloss_common_words=True))
    katakana = document.render(
        "markdown", RenderOptions(gloss_common_words=True, script="katakana")
    )
    assert katakana == "[神]{カミ}は「[光]{ヒカリ}あれ」と[言]{イ}われた。すると[光]{ヒカリ}があった。"
    assert hiragana.replace("かみ", "カミ").replace("ひかり", "ヒカリ").replace("{い}", "{イ}") == katakana


def test_tokens_without_kanji_skip_the_dictionary(analyzer) -> None:
    class _CountingDictionary:
        def __init__(self) -> None:
            self.queries: list[str] = []

        def lookup(self, surface: str):
            self.queries.append(surface)
            return ()

    counting = _CountingDictionary()
    Annotator(counting, analyzer=analyzer).annotate("宮崎のマンゴーとても美味しいです。")  # type: ignore[arg-type]
    assert counting.queries == ["宮崎", "美味しい"]


def test_token_boundaries_are_preserved(dictionary, analyzer) -> None:
    document = Annotator(dictionary, analyzer=analyzer).annotate("千と千尋の神隠し")
    indices = [segment.token_index for segment in document.segments]
    assert indices == [0, 1, 2, 2, 3, 4, 4, 4]
    assert isinstance(document.segments[-1], PlainSegment)
    assert document.segments[-1].text == "し"


def test_kanji_token_without_reading_stays_plain(dictionary) -> None:
    analyzer = StubAnalyzer({"鬮": [("鬮", "")]})
    document = Annotator(dictionary, analyzer=analyzer).annotate("鬮")
    assert document.segments == (PlainSegment("鬮", 0, 1, 0),)


def test_exact_strategy_falls_back_to_pronunciation(dictionary) -> None:
    analyzer = StubAnalyzer({"光": [("光", "ヒカル")]})
    heuristic = Annotator(dictionary, analyzer=analyzer).annotate("光")
    exact = Annotator(dictionary, analyzer=analyzer, selector=get_selector("exact")).annotate("光")

    assert heuristic.furigana[0].reading == "ひかり"
    assert heuristic.furigana[0].source == "dictionary"
    assert exact.furigana[0].reading == "ひかる"
    assert exact.furigana[0].source == "analyzer"


def test_broken_token_partition_raises(dictionary) -> None:
    class _GappyAnalyzer:
        def tokenize(self, text: str) -> list[Token]:
            return [Token(surface="神", start=0, end=1, reading="カミ")]

    with pytest.raises(TokenizationError):
        Annotator(dictionary, analyzer=_GappyAnalyzer()).annotate("神は")


def test_empty_text_gives_empty_document(dictionary) -> None:
    document = Annotator(dictionary, analyzer=StubAnalyzer({"": []})).annotate("")
    assert document.segments == ()
    assert document.render("html") == ""


def test_annotate_many_keeps_order(dictionary, analyzer) -> None:
    texts = sorted(TOKENS) * 3
    annotator = Annotator(dictionary, analyzer=analyzer)
    documents = annotator.annotate_many(texts, max_workers=4)
    assert [doc.text for doc in documents] == texts
    for document in documents:
        _assert_covers(document)
        assert document == annotator.annotate(document.text)


def test_furigana_segments_remember_their_word(dictionary, analyzer) -> None:
    document = Annotator(dictionary, analyzer=analyzer).annotate("宮崎のマンゴーとても美味しいです。")
    first = document.segments[0]
    assert isinstance(first, FuriganaSegment)
    assert first.word == "宮崎"
    assert first.common is False


def test_debug_log_reports_unglossed_tokens(dictionary, capsys) -> None:
    analyzer = StubAnalyzer({"鬮": [("鬮", "")]})
    set_debug_logging(True)
    try:
        Annotator(dictionary, analyzer=analyzer).annotate("鬮")
    finally:
        set_debug_logging(False)
    assert "[furi debug] no reading for '鬮'" in capsys.readouterr().err


def test_module_annotate_uses_default_dictionary(tmp_path, monkeypatch, dictionary) -> None:
    path = save_dictionary(dictionary, tmp_path / "dict.json.gz")
    monkeypatch.setenv("FURI_DICTIONARY", str(path))
    monkeypatch.setattr(annotate_module, "Analyzer", StubAnalyzer)
    default_dictionary.cache_clear()
    annotate_module.default_annotator.cache_clear()
    try:
        document = annotate_module.annotate("千と千尋の神隠し")
        assert annotate_module.default_annotator().dictionary is default_dictionary()
    finally:
        default_dictionary.cache_clear()
        annotate_module.default_annotator.cache_clear()
    assert document.render("markdown").startswith("[千]{せん}と[千]{ち}[尋]{ひろ}")


def test_inflected_token_uses_dictionary_form(dictionary, analyzer) -> None:
    document = Annotator(dictionary, analyzer=analyzer).annotate(
        "神は「光あれ」と言われた。すると光があった。"
    )
    iwa = [segment for segment in document.segments if segment.token_index == 7]
    assert iwa == [
        FuriganaSegment("言", "い", 8, 9, 7, word="言わ", common=True, source="dictionary"),
        PlainSegment("わ", 9, 10, 7),
    ]


def test_dictionary_form_with_other_reading_keeps_its_frequency(dictionary) -> None:
    # 来 reads き here, which the entry for 来る (く) cannot spell.
    analyzer = StubAnalyzer({"来た": [("来", "キ", "来る"), ("た", "タ")]})
    document = Annotator(dictionary, analyzer=analyzer).annotate("来た")

    (segment,) = document.furigana
    assert (segment.text, segment.reading, segment.source) == ("来", "き", "analyzer")
    assert segment.common is True
    assert document.render("markdown") == "来た"
    assert document.render("markdown", RenderOptions(gloss_common_words=True)) == "[来]{き}た"


def test_unknown_dictionary_form_falls_back_to_analyzer(dictionary) -> None:
    analyzer = StubAnalyzer({"轟く": [("轟く", "トドロク", "轟く")], "轟い": [("轟い", "トドロイ", "轟く")]})
    annotator = Annotator(dictionary, analyzer=analyzer)
    assert annotator.annotate("轟く").render("markdown") == "[轟]{とどろ}く"
    assert annotator.annotate("轟い").render("markdown") == "[轟]{とどろ}い"
