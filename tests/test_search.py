"""
Tests for site search.
"""
from sqlalchemy.orm import Session

from thinkpress.services import ideas as idea_service
from thinkpress.services import threads as thread_service
from thinkpress.services.search import highlight_match, search


class TestSearch:

    def test_short_query_returns_empty(self, db_session: Session, make_post):
        make_post("A post", publish=True)
        assert search(db_session, " a ") == {"posts": [], "ideas": [], "threads": []}
        assert search(db_session, None) == {"posts": [], "ideas": [], "threads": []}

    def test_posts_only_published_and_ranked(self, db_session: Session, make_post):
        make_post("Python Tips", content="python python tricks", publish=True)
        make_post("Cooking", content="I once used python in the kitchen", publish=True)
        make_post("Python Draft", content="python")

        hits = search(db_session, "python", type="posts")["posts"]
        assert [h["slug"] for h in hits] == ["python-tips", "cooking"]
        assert hits[0]["score"] > hits[1]["score"]
        assert hits[0]["title"] == "<mark>Python</mark> Tips"

    def test_post_limit(self, db_session: Session, make_post):
        for i in range(12):
            make_post(f"Graph Note {i}", publish=True)
        assert len(search(db_session, "graph", type="posts")["posts"]) == 10

    def test_like_wildcards_are_literal(self, db_session: Session, make_post):
        make_post("Plain", content="nothing special", publish=True)
        assert search(db_session, "%%", type="posts")["posts"] == []

    def test_ideas_substring_by_post_count(self, db_session: Session, make_post):
        idea_service.create_idea(db_session, "Machine Learning")
        big = idea_service.create_idea(db_session, "Learning Theory")
        make_post("Counted", idea_ids=[big.id], publish=True)
        idea_service.create_idea(db_session, "Cooking")

        hits = search(db_session, "LEARN", type="ideas")["ideas"]
        assert [h["slug"] for h in hits] == ["learning-theory", "machine-learning"]

    def test_threads_public_title_or_description(self, db_session: Session):
        thread_service.create_thread(db_session, "Compilers", description="parsing adventures")
        thread_service.create_thread(db_session, "Parsing Private", visibility="private")
        thread_service.create_thread(db_session, "Unrelated")

        hits = search(db_session, "parsing", type="threads")["threads"]
        assert hits == [{"slug": "compilers", "title": "Compilers"}]

    def test_type_filter(self, db_session: Session, make_post):
        make_post("Rust Post", publish=True)
        idea_service.create_idea(db_session, "Rust")
        result = search(db_session, "rust", type="ideas")
        assert result["posts"] == []
        assert [i["slug"] for i in result["ideas"]] == ["rust"]


class TestHighlight:

    def test_case_insensitive(self):
        assert highlight_match("Hello hello", "HELLO") == "<mark>Hello</mark> <mark>hello</mark>"

    def test_regex_characters_escaped(self):
        assert highlight_match("a+b and ab", "a+b") == "<mark>a+b</mark> and ab"

    def test_empty_text(self):
        assert highlight_match(None, "x") == ""
