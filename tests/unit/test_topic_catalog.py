"""
Unit tests for the topic catalog and question identities.

Run: pytest tests/unit/test_topic_catalog.py -v
"""

import json

from topicdrill.scheduling.topic_catalog import (
    Question,
    TopicCatalog,
    load_question_bank,
    problem_link,
    topic_name_from_id,
)


class TestTopicCatalog:
    """Tests for flattening the question bank."""

    def test_topics_follow_bank_order(self, sample_bank):
        catalog = TopicCatalog.from_question_bank(sample_bank)

        assert [t.id for t in catalog.topics] == [
            "Analysis::Sequences",
            "Analysis::Continuity",
            "Analysis::Integration",
            "Groups::Subgroups",
            "Groups::Homomorphisms",
        ]
        assert len(catalog) == 5

    def test_topic_fields(self, sample_bank):
        topic = TopicCatalog.from_question_bank(sample_bank).get("Groups::Subgroups")

        assert topic.module == "Groups"
        assert topic.name == "Subgroups"

    def test_skips_malformed_entries(self):
        bank = {
            "Analysis": {"Sequences": ["Q1"], "Notes": "not a list", "Meta": {"a": 1}},
            "version": 3,
            "Broken": None,
        }

        catalog = TopicCatalog.from_question_bank(bank)

        assert [t.id for t in catalog] == ["Analysis::Sequences"]

    def test_empty_and_missing_banks(self):
        assert TopicCatalog.from_question_bank({}).is_empty
        assert TopicCatalog.from_question_bank(None).is_empty

    def test_questions_for_topic(self, sample_bank):
        catalog = TopicCatalog.from_question_bank(sample_bank)
        topic = catalog.get("Analysis::Integration")

        questions = catalog.questions_for(topic)

        assert [q.raw for q in questions] == ["2020 Paper 3 Q1", "Example sheet 2 Q5"]
        assert all(q.topic_id == topic.id for q in questions)

    def test_topics_in_module_sorted_by_name(self, sample_bank):
        catalog = TopicCatalog.from_question_bank(sample_bank)

        names = [t.name for t in catalog.topics_in_module("Analysis")]

        assert names == ["Continuity", "Integration", "Sequences"]

    def test_stats(self, sample_bank):
        stats = TopicCatalog.from_question_bank(sample_bank).get_stats()

        assert stats["total_topics"] == 5
        assert stats["modules"]["Analysis"] == {"topics": 3, "questions": 5}


class TestQuestion:
    """Tests for question identities."""

    def test_ids(self):
        q = Question(module="M1", topic="T1", raw="2020 Q1")

        assert q.id == "M1::T1::2020 Q1"
        assert q.legacy_id == "M1_T1_2020 Q1"
        assert q.accepted_ids == {"M1::T1::2020 Q1", "M1_T1_2020 Q1"}

    def test_year(self):
        assert Question("M", "T", "Paper 2019 Q3").year == "2019"
        assert Question("M", "T", "Example sheet 2").year is None
        assert Question("M", "T", "Q12345").year is None

    def test_problem_link(self):
        q = Question(module="Analysis", topic="Sequences", raw="2021 Paper 2 Q4")

        link = problem_link(q, "https://example.org/viewer")

        assert link.startswith("https://example.org/viewer?")
        assert "module=Analysis" in link
        assert "id=QP_2021" in link

    def test_problem_link_percent_encodes_spaces(self):
        link = problem_link(Question("Linear Algebra", "Eigenvalues", "2018 Paper 1 Q2"))

        assert "module=Linear%20Algebra" in link

    def test_problem_link_without_year(self):

        assert problem_link(Question("M", "T", "Example sheet 2 Q5")) is None

    def test_topic_name_from_id(self):
        assert topic_name_from_id("Analysis::Sequences") == "Sequences"
        assert topic_name_from_id("M::a::b") == "a::b"


class TestLoadQuestionBank:
    """Tests for reading the question bank file."""

    def test_loads_json_object(self, tmp_path, sample_bank):
        path = tmp_path / "IB.json"
        path.write_text(json.dumps(sample_bank), encoding="utf-8")

        assert load_question_bank(path) == sample_bank

    def test_missing_file(self, tmp_path):
        assert load_question_bank(tmp_path / "missing.json") is None

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "IB.json"
        path.write_text("{not json", encoding="utf-8")

        assert load_question_bank(path) is None

    def test_non_object(self, tmp_path):
        path = tmp_path / "IB.json"
        path.write_text("[1, 2]", encoding="utf-8")

        assert load_question_bank(path) is None
