import json

import pytest

from contentgen.normalizer import (
    CLUSTER,
    MANUAL_CONTENT_CAP,
    SINGLE,
    TOPICS,
    extract_candidate,
    extract_sections,
    normalize_response,
    placeholder_cluster,
)
from contentgen.schemas import Article


def _dump(article):
    return article.model_dump(by_alias=True, exclude_none=True)


def test_fenced_json_article():
    text = '```json\n{"title":"A","content":"<p>x</p>","tags":["t1"]}\n```'
    result = normalize_response(text, SINGLE)

    assert result.success
    assert result.strategy == "direct"
    assert not result.degraded
    assert _dump(result.article) == {"title": "A", "content": "<p>x</p>", "tags": ["t1"]}


def test_repairs_bare_keys_single_quotes_and_trailing_comma():
    result = normalize_response("{title: 'A', content: 'x',}", SINGLE)

    assert result.success
    assert result.strategy == "repaired"
    assert _dump(result.article) == {"title": "A", "content": "x"}


def test_manual_extraction_builds_one_subtopic_per_marker():
    text = "Article 1: Title: Foo\nSome body text.\nArticle 2: Title: Bar\nOther body."
    result = normalize_response(text, CLUSTER, topic="Coffee")

    assert result.success
    assert result.strategy == "manual"
    assert result.degraded
    assert [a.title for a in result.cluster.subtopics] == ["Foo", "Bar"]
    assert result.cluster.subtopics[0].content == "<p>Some body text.</p>"
    assert result.cluster.subtopics[0].tags == ["Coffee"]
    assert result.cluster.subtopics[1].id == "coffee-2"
    assert result.cluster.pillar.title == "Coffee"


@pytest.mark.parametrize("text", ["", None, "   \n"])
@pytest.mark.parametrize("mode", [SINGLE, TOPICS])
def test_empty_input_fails_without_raising(text, mode):
    result = normalize_response(text, mode)

    assert result.success is False
    assert result.message
    assert result.cluster is None


def test_empty_cluster_input_reports_failure_with_placeholder():
    result = normalize_response("", CLUSTER, topic="Water softeners", keywords=["a", "b"])

    assert result.success is False
    assert result.message
    assert result.strategy == "placeholder"
    assert result.degraded
    assert result.cluster == placeholder_cluster("Water softeners", ["a", "b"])


@pytest.mark.parametrize(
    "text",
    ["}", "[", "```", "{{{{", "\x00\x01", '"unterminated', "Sorry, I can't help with that."],
)
@pytest.mark.parametrize("mode", [SINGLE, CLUSTER, TOPICS])
def test_garbage_never_raises(text, mode):
    result = normalize_response(text, mode, topic="Tea")
    assert result.success is False
    assert result.message


def test_article_round_trip():
    article = Article(
        title="Choosing a Water Softener",
        content="<h2>Why it matters</h2><p>Hard water, explained: minerals, scale.</p>",
        meta_description="How to pick one.",
        tags=["water", "home"],
    )
    text = json.dumps(article.model_dump(by_alias=True, exclude_none=True))
    result = normalize_response(text, SINGLE)

    assert result.success
    assert result.article.title == article.title
    assert result.article.content == article.content
    assert result.article.tags == article.tags


def test_model_field_names_are_accepted():
    text = json.dumps(
        {
            "title": "T",
            "content": "<p>c</p>",
            "meta_description": "m",
            "estimated_reading_time": 6,
            "suggested_tags": ["a", "b"],
        }
    )
    article = normalize_response(text, SINGLE).article

    assert article.meta_description == "m"
    assert article.estimated_reading_time == "6"
    assert article.tags == ["a", "b"]


def test_json_surrounded_by_prose():
    text = 'Here is your post:\n{"title": "A", "content": "<p>{braces} inside</p>"}\nEnjoy!'
    result = normalize_response(text, SINGLE)

    assert result.strategy == "direct"
    assert result.article.content == "<p>{braces} inside</p>"


def test_single_mode_unwraps_article_key_and_lists():
    wrapped = normalize_response('{"article": {"title": "A", "content": "x"}}', SINGLE)
    listed = normalize_response('[{"title": "B", "content": "y"}]', SINGLE)

    assert wrapped.article.title == "A"
    assert listed.article.title == "B"


def test_cluster_with_pillar_and_subtopics():
    payload = {
        "pillar": {"title": "Guide", "content": "<p>p</p>", "suggested_tags": ["g"]},
        "subtopics": [
            {"title": "One", "content": "<p>1</p>"},
            {"content": "missing title"},
            {"title": "Two", "content": "<p>2</p>"},
        ],
    }
    result = normalize_response("```\n" + json.dumps(payload) + "\n```", CLUSTER, topic="t")

    assert result.success
    assert result.cluster.pillar.title == "Guide"
    assert [a.title for a in result.cluster.subtopics] == ["One", "Two"]


def test_legacy_cluster_shape_gets_a_pillar():
    payload = {"mainTopic": "Coffee", "subtopics": [{"title": "Beans", "content": "b"}]}
    cluster = normalize_response(json.dumps(payload), CLUSTER).cluster

    assert cluster.pillar.title == "Coffee"
    assert "Beans" in cluster.pillar.content
    assert len(cluster.subtopics) == 1


def test_array_of_articles_in_cluster_mode():
    payload = [{"title": "A", "content": "a"}, {"title": "B", "content": "b"}]
    cluster = normalize_response(json.dumps(payload), CLUSTER, topic="Tea").cluster

    assert cluster.pillar.title == "Tea"
    assert [a.title for a in cluster.subtopics] == ["A", "B"]


def test_unrecognizable_text_reports_failure():
    result = normalize_response("I could not write that article today.", SINGLE)

    assert result.success is False
    assert result.message == "Could not parse the generated content"


def test_manual_extraction_single_mode_and_pillar_marker():
    text = (
        "## Pillar: The Complete Guide\nOverview text.\n"
        "**Subtopic 1:** Installing\nMeta description: Install it.\nTags: diy, tools\nSteps here.\n"
    )
    cluster = normalize_response(text, CLUSTER, topic="Softeners").cluster
    single = normalize_response(text, SINGLE, topic="Softeners").article

    assert cluster.pillar.title == "The Complete Guide"
    assert [a.title for a in cluster.subtopics] == ["Installing"]
    installing = cluster.subtopics[0]
    assert installing.meta_description == "Install it."
    assert installing.tags == ["Softeners", "diy", "tools"]
    assert installing.content == "<p>Steps here.</p>"
    assert single.title == "The Complete Guide"


def test_manual_content_is_capped():
    text = "Article 1: Long one\n" + "a" * (MANUAL_CONTENT_CAP + 500)
    article = normalize_response(text, SINGLE).article

    assert "a" * MANUAL_CONTENT_CAP in article.content
    assert "a" * (MANUAL_CONTENT_CAP + 1) not in article.content


def test_topics_mode_parses_array_after_prose():
    text = (
        "Sure! Ideas {see below}:\n"
        '[{"title": "Hard water 101", "description": "Basics", "keywords": "hard water, minerals"},'
        ' {"title": "Softener sizing", "keywords": ["sizing"]},]'
    )
    result = normalize_response(text, TOPICS)

    assert result.success
    assert [t.title for t in result.topics] == ["Hard water 101", "Softener sizing"]
    assert result.topics[0].keywords == ["hard water", "minerals"]


def test_extract_candidate_prefers_json_fence():
    text = 'Intro {not this}\n```json\n{"a": 1}\n```\n```\n{"b": 2}\n```'
    assert extract_candidate(text) == '{"a": 1}'


def test_extract_candidate_unterminated_fence():
    assert extract_candidate('```json\n{"title": "A", "content": "cut') == '{"title": "A", "content": "cut'


def test_extract_candidate_falls_back_to_full_text():
    assert extract_candidate("  just words  ") == "just words"


def test_sections_need_numbered_markers():
    assert extract_sections("Article: no number here\nArticles are great.") == []


def test_placeholder_cluster_is_deterministic():
    first = placeholder_cluster("Tea", ["green", "black", "oolong", "white"])

    assert first == placeholder_cluster("Tea", ["green", "black", "oolong", "white"])
    assert first.pillar.tags == ["green", "black", "oolong"]
    assert [a.title for a in first.subtopics] == [
        "Tea - Aspect 1",
        "Tea - Aspect 2",
        "Tea - Aspect 3",
    ]


def test_unknown_mode_is_a_programming_error():
    with pytest.raises(ValueError):
        normalize_response("{}", "bulk")


def test_brackets_inside_single_quoted_values_do_not_end_the_candidate():
    text = (
        "{'title': 'Sizing guide', "
        "'content': '<p>Pick the 32-40] grain range for a family of four.</p>', "
        "'tags': ['a']}"
    )
    result = normalize_response(text, SINGLE)

    assert result.strategy == "repaired"
    assert result.article.content == "<p>Pick the 32-40] grain range for a family of four.</p>"
    assert result.article.tags == ["a"]


def test_brackets_inside_curly_quoted_values_do_not_end_the_candidate():
    text = "Here you go: {“title”: “Use ]brackets[ wisely”, “content”: “<p>x</p>”} Enjoy"
    article = normalize_response(text, SINGLE).article

    assert article.title == "Use ]brackets[ wisely"
    assert article.content == "<p>x</p>"


def test_extract_candidate_skips_brackets_in_quoted_strings():
    text = "{'a': 'x}y', 'b': [1]} trailing"
    assert extract_candidate(text) == "{'a': 'x}y', 'b': [1]}"


@pytest.mark.parametrize("pillar", [{"content": "<p>overview</p>"}, None, {"title": 7}])
def test_unusable_pillar_is_replaced_by_an_overview(pillar):
    payload = {
        "pillar": pillar,
        "subtopics": [
            {"title": "A", "content": "<p>a</p>"},
            {"title": "B", "content": "<p>b</p>"},
        ],
    }
    result = normalize_response(json.dumps(payload), CLUSTER, topic="Tea")

    assert result.success
    assert result.strategy == "direct"
    assert result.cluster.pillar.title == "Tea"
    assert "<li>A</li>" in result.cluster.pillar.content
    assert [a.title for a in result.cluster.subtopics] == ["A", "B"]


def test_unusable_pillar_without_subtopics_still_fails():
    result = normalize_response('{"pillar": null, "subtopics": []}', CLUSTER, topic="Tea")

    assert result.success is False
    assert result.strategy == "placeholder"
