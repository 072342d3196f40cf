# src/e2e/test_loader_annotation.py

import json

import pytest

from digest.errors import MalformedAnnotation
from digest.loader import load_session, parse_annotation, session_from_dict


def _payload(body, groups, summary="summary text"):
    toks = [body]
    for snippet, marked, words, sentence, keywords in groups:
        toks += [snippet, marked, str(words), sentence, str(keywords)]
    toks.append(summary)
    return "`".join(toks)


def test_parses_body_groups_and_summary():
    doc = parse_annotation(_payload("the body", [
        ("cats", "[cats]", 1, "cats sleep a lot", 3),
        ("big dogs", "big [dog]s", 2, "big dogs bark", 1),
    ]))
    assert doc.body == "the body"
    assert doc.summary == "summary text"
    assert len(doc.annotations) == 2
    a = doc.annotations[1]
    assert (a.snippet, a.marked_phrase, a.word_count, a.sentence, a.keyword_count) == \
        ("big dogs", "big [dog]s", 2, "big dogs bark", 1)


def test_body_and_summary_only():
    doc = parse_annotation("body`summary")
    assert doc.annotations == []
    assert doc.summary == "summary"


def test_fewer_than_two_tokens_is_malformed():
    with pytest.raises(MalformedAnnotation):
        parse_annotation("just one token")
    with pytest.raises(MalformedAnnotation):
        parse_annotation("")


def test_short_group_is_malformed():
    with pytest.raises(MalformedAnnotation, match="groups"):
        parse_annotation("body`cats`[cats]`1`summary")


def test_non_integer_count_is_malformed():
    with pytest.raises(MalformedAnnotation, match="word count"):
        parse_annotation(_payload("b", [("cats", "[cats]", "one", "cats sleep", 1)]))


def test_session_from_dict_and_file(tmp_path):
    data = {
        "query": "felines",
        "cluster_keywords": "cat+",
        "documents": [
            {"doc_id": 7, "node_id": 2, "term_weight": 3, "keywords": [1, 2]},
            {"doc_id": 8},
        ],
        "global_weights": {"1": 2.5},
        "selected_facets": [1],
        "annotations": {"7": "b`s"},
        "labels": {"1": "big^cat"},
    }
    cfg = session_from_dict(data)
    assert cfg.query == "felines"
    assert cfg.documents[0].keywords == frozenset({1, 2})
    assert cfg.documents[1].term_weight == 1
    assert cfg.global_weights == {1: 2.5}
    assert cfg.annotations == {7: "b`s"}

    p = tmp_path / "session.json"
    p.write_text(json.dumps(data), encoding="utf-8")
    assert load_session(str(p)) == cfg


def test_session_requires_query():
    with pytest.raises(ValueError, match="query"):
        session_from_dict({"documents": []})


def test_term_weight_from_json_is_numeric():
    cfg = session_from_dict({"query": "q", "documents": [{"doc_id": 1, "term_weight": "2.5"}]})
    assert cfg.documents[0].term_weight == 2.5
    assert isinstance(cfg.documents[0].term_weight, float)
