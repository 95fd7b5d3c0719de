from dataclasses import replace

from propfirm_router import RouterConfig, extract_keywords, normalize_question


def test_extraction_is_deterministic():
    question = "¿Cuánto cuesta el plan de $10K en Apex?"
    first = extract_keywords(question)
    assert isinstance(first, frozenset)
    for _ in range(3):
        assert extract_keywords(question) == first
    assert first == {"plan", "cuánto", "cuesta", "$10k", "apex"}


def test_group_keywords_match_substrings():
    keywords = extract_keywords("Quiero retirar ganancias de mi cuenta fondeada")
    assert {"retir", "cuenta"} <= keywords
    assert "fondeado" not in keywords


def test_free_words_skip_short_and_stop_words():
    keywords = extract_keywords("como pasar la evaluacion para apex")
    assert {"pasar", "evaluacion", "apex"} <= keywords
    assert "la" not in keywords
    assert "para" not in keywords
    # group keywords are kept even when they are stop words
    assert "como" in keywords


def test_free_words_are_capped():
    keywords = extract_keywords("uno dos tres cuatro cinco seis siete")
    assert {"uno", "dos", "tres", "cuatro", "cinco"} <= keywords
    assert "seis" not in keywords
    assert "siete" not in keywords

    cfg = replace(RouterConfig(), max_free_words=2)
    assert extract_keywords("uno dos tres", cfg) == {"uno", "dos"}


def test_no_keywords():
    assert extract_keywords("ok") == frozenset()


def test_normalize_question():
    assert normalize_question("  ¿Cuánto   CUESTA? ") == "cuánto cuesta"
    assert normalize_question("¡Hola!") == "hola"
    assert len(normalize_question("a" * 500)) == 200
    assert len(normalize_question("a" * 500, max_length=20)) == 20


def test_default_config_is_built_per_call():
    question = "reglas de drawdown para bulenox"
    assert extract_keywords(question) == extract_keywords(question, RouterConfig())
    assert "bulenox" not in extract_keywords(question, replace(RouterConfig(), max_free_words=1))
