import unittest
from unittest import mock

from sparkfeed.extraction import detail_parser
from sparkfeed.extraction.detail_parser import (
    ParseFailure,
    collect_vote_triples,
    extract_categories,
    extract_demo_url,
    extract_description,
    extract_status,
    extract_team_members,
    extract_team_name,
    extract_title,
    extract_token_address,
    extract_vote_counts,
    parse_project_page,
)
from sparkfeed.ingestion.project_types import NO_DESCRIPTION, UNKNOWN_TEAM, CanonicalProject, ProjectStatus

TOKEN = "$SR: 48BbwbZHWc8QJBiuGJTQZD5aWZdP3i6xrDw5N9EHpump"

SAMPLE_PAGE = f"""
<html>
  <head><title>My Cool Project | Colosseum</title></head>
  <body>
    <h1>My Cool Project</h1>
    <p>by alice | Team: alice's Team</p>
    <span>Trading</span><span>DeFi</span><span>defi</span>
    <h2>Description</h2>
    <div><p>An autonomous trading agent that rebalances Solana portfolios every hour.</p></div>
    <h2>Links</h2>
    <a href="https://github.com/alice/cool">View Repository</a>
    <a href="https://demo.example.com/cool">Technical Demo</a>
    <p>{TOKEN}</p>
    <h2>Team Members</h2>
    <div>alice</div><div>Joined 2/3/2026</div>
    <div>bob_42</div><div>Joined 12/31/2025</div>
    <div class="votes">12 4 16</div>
  </body>
</html>
"""


class TestParseProjectPage(unittest.TestCase):
    def test_full_page(self):
        p = parse_project_page(SAMPLE_PAGE, "cool-proj", detail_base="https://example.com/projects")
        self.assertIsInstance(p, CanonicalProject)
        self.assertEqual(p.title, "My Cool Project")
        self.assertEqual(p.slug, "my-cool-project")
        self.assertEqual(p.external_id, "cool-proj")
        self.assertEqual(p.external_url, "https://example.com/projects/cool-proj")
        self.assertEqual(p.description, "An autonomous trading agent that rebalances Solana portfolios every hour.")
        self.assertEqual(p.team_name, "alice")
        self.assertEqual((p.human_votes, p.agent_votes, p.total_votes), (12, 4, 16))
        self.assertEqual(p.status, ProjectStatus.PUBLISHED)
        self.assertEqual(p.categories, ("Trading", "DeFi"))
        self.assertEqual(p.repository_url, "https://github.com/alice/cool")
        self.assertEqual(p.demo_url, "https://demo.example.com/cool")
        self.assertEqual(p.token_address, TOKEN)
        self.assertEqual(p.team_members, ("alice — Joined 2/3/2026", "bob_42 — Joined 12/31/2025"))

    def test_bare_page_uses_sentinels(self):
        p = parse_project_page("<html><body><p>nothing here</p></body></html>", "lonely-one")
        self.assertEqual(p.title, "lonely-one")
        self.assertEqual(p.slug, "lonely-one")
        self.assertEqual(p.description, NO_DESCRIPTION)
        self.assertEqual(p.team_name, UNKNOWN_TEAM)
        self.assertEqual((p.human_votes, p.agent_votes, p.total_votes), (0, 0, 0))
        self.assertIsNone(p.categories)
        self.assertIsNone(p.team_members)
        self.assertIsNone(p.repository_url)
        self.assertIsNone(p.demo_url)
        self.assertIsNone(p.token_address)

    def test_team_members_fall_back_to_team_name(self):
        p = parse_project_page("<p>Team: carol's Team</p>", "x")
        self.assertEqual(p.team_name, "carol")
        self.assertEqual(p.team_members, ("carol",))

    def test_empty_identifier_is_a_parse_failure(self):
        result = parse_project_page(SAMPLE_PAGE, "")
        self.assertIsInstance(result, ParseFailure)

    def test_unexpected_error_becomes_parse_failure(self):
        with mock.patch.object(detail_parser, "extract_title", side_effect=RuntimeError("boom")):
            result = parse_project_page(SAMPLE_PAGE, "cool-proj")
        self.assertIsInstance(result, ParseFailure)
        self.assertEqual(result.identifier, "cool-proj")
        self.assertIn("boom", result.error)


class TestTitle(unittest.TestCase):
    def test_title_tag_suffixes_stripped(self):
        self.assertEqual(extract_title("<title>Agent X | Agent Hackathon | Colosseum</title>"), "Agent X")

    def test_generic_title_falls_through_to_h1(self):
        html = (
            "<title>Project | Agent Hackathon</title>"
            "<h1>Project | Agent Hackathon</h1>"
            "<h1>Real Name</h1>"
        )
        self.assertEqual(extract_title(html), "Real Name")

    def test_long_h1_is_skipped(self):
        html = "<title></title><h1>" + "x" * 90 + "</h1><h1>Short Name</h1>"
        self.assertEqual(extract_title(html), "Short Name")

    def test_no_title(self):
        self.assertIsNone(extract_title("<p>no headings</p>"))


class TestDescription(unittest.TestCase):
    def test_missing_heading(self):
        self.assertIsNone(extract_description("<p>A long paragraph with plenty of words but no heading.</p>"))
        p = parse_project_page("<p>A long paragraph with plenty of words but no heading.</p>", "x")
        self.assertEqual(p.description, "No description available")

    def test_meta_description_is_not_a_heading(self):
        html = '<meta name="description" content="Meta text that is long enough to pass the check"><title>T</title>'
        self.assertIsNone(extract_description(html))

    def test_short_block_falls_back_to_paragraph(self):
        html = (
            "<h2>Description</h2><span>tiny</span></section>"
            "<p>This paragraph is long enough to count as a description.</p>"
        )
        self.assertEqual(extract_description(html), "This paragraph is long enough to count as a description.")

    def test_div_after_heading_beats_paragraph(self):
        html = (
            "<h2>Description</h2><span>x</span></section>"
            "<div>The div body is long enough to be the description.</div>"
            "<p>The paragraph body is also long enough to qualify.</p>"
        )
        self.assertEqual(extract_description(html), "The div body is long enough to be the description.")

    def test_short_everywhere_gives_none(self):
        html = "<h2>Description</h2><p>Too short.</p><h2>Links</h2>"
        self.assertIsNone(extract_description(html))


class TestTeam(unittest.TestCase):
    def test_by_pattern_first(self):
        self.assertEqual(extract_team_name("<p>by dave | Team: erin</p>"), "dave")

    def test_team_label(self):
        self.assertEqual(extract_team_name("<p>Team: erin's Team</p>"), "erin")

    def test_none(self):
        self.assertIsNone(extract_team_name("<p>nobody</p>"))

    def test_members(self):
        self.assertEqual(extract_team_members("<li>zed</li><li>Joined 1/5/2026</li>"), ["zed — Joined 1/5/2026"])


class TestVotes(unittest.TestCase):
    def test_last_triple_wins(self):
        self.assertEqual(extract_vote_counts("<p>1 2 3</p><div>4 5 9</div>"), (4, 5, 9))

    def test_duplicate_render_collapses(self):
        html = "<p>1 1 2</p><span>3 5 8</span><span>3 5 8</span>"
        self.assertEqual(collect_vote_triples(html)[-2:], [(3, 5, 8), (3, 5, 8)])
        self.assertEqual(extract_vote_counts(html), (3, 5, 8))

    def test_large_numbers_are_noise(self):
        html = "<img data-size='1920 1080 24'><div>7 2 9</div><p>2024 5 6</p>"
        self.assertEqual(extract_vote_counts(html), (7, 2, 9))

    def test_no_triple(self):
        self.assertIsNone(extract_vote_counts("<p>42 votes</p>"))


class TestMisc(unittest.TestCase):
    def test_status(self):
        self.assertEqual(extract_status("<span>DRAFT</span>"), ProjectStatus.DRAFT)
        self.assertEqual(extract_status("<span>Submitted</span>"), ProjectStatus.PUBLISHED)

    def test_categories_keep_vocabulary_order(self):
        html = "<span>new   markets</span><span>AI</span><span>Trading</span><span>trading</span>"
        self.assertEqual(extract_categories(html), ["Trading", "AI", "New Markets"])

    def test_categories_use_word_boundaries(self):
        self.assertEqual(extract_categories("<p>Daily gains from socialite paid</p>"), [])

    def test_demo_label_before_href(self):
        html = '<h3>Technical Demo</h3><p><a href="https://demo.example.org/x">open</a></p>'
        self.assertEqual(extract_demo_url(html), "https://demo.example.org/x")

    def test_demo_earliest_shape_wins(self):
        html = (
            '<a href="https://first.example.org/demo">Technical Demo</a>'
            '<h3>Technical Demo</h3><a href="https://second.example.org/demo">open</a>'
        )
        self.assertEqual(extract_demo_url(html), "https://first.example.org/demo")

    def test_token_address(self):
        self.assertEqual(extract_token_address(f"<p>Token {TOKEN}</p>"), TOKEN)
        self.assertEqual(extract_token_address("$SR:48BbwbZHWc8QJBiuGJTQZD5aWZdP3i6xrDw5N9EHpump"), TOKEN)

    def test_token_address_rejects_bad_alphabet_and_length(self):
        self.assertIsNone(extract_token_address("$SR: 0OIl" + "a" * 30))
        self.assertIsNone(extract_token_address("$SR: " + "a" * 31))
        self.assertIsNone(extract_token_address("$SR: " + "a" * 45))


if __name__ == "__main__":
    unittest.main()
