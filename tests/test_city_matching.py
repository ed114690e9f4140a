from __future__ import annotations

import unittest

from listit.services.city_matching import (
    candidate_cities,
    city_token,
    edit_distance,
    match_cities,
    normalize_city_key,
)


class CityTokenTestCase(unittest.TestCase):
    def test_takes_text_before_first_comma(self):
        self.assertEqual(city_token("Brooklyn, NY"), "Brooklyn")
        self.assertEqual(city_token("  Portland , OR, USA"), "Portland")

    def test_without_comma_returns_trimmed_string(self):
        self.assertEqual(city_token("  Queens  "), "Queens")

    def test_empty_or_missing(self):
        self.assertEqual(city_token(""), "")
        self.assertEqual(city_token(None), "")
        self.assertEqual(city_token(", NY"), "")

    def test_candidate_set_drops_empty_tokens_and_duplicates(self):
        cities = candidate_cities(["Brooklyn, NY", "Brooklyn, NY", ", NJ", "", None, "Queens"])
        self.assertEqual(cities, {"Brooklyn", "Queens"})


class NormalizeCityKeyTestCase(unittest.TestCase):
    def test_strips_everything_but_ascii_letters(self):
        self.assertEqual(normalize_city_key("St. Paul"), "stpaul")
        self.assertEqual(normalize_city_key("Winston-Salem"), "winstonsalem")
        self.assertEqual(normalize_city_key("Coeur d'Alene 83814"), "coeurdalene")
        self.assertEqual(normalize_city_key("São Paulo"), "sopaulo")

    def test_output_is_lowercase_letters_and_idempotent(self):
        samples = ["", "NYC!!", "  Los   Angeles ", "123", "Ürümqi", "ALL CAPS", "mixed-Case_42"]
        for s in samples:
            key = normalize_city_key(s)
            self.assertTrue(all("a" <= ch <= "z" for ch in key), msg=repr(s))
            self.assertEqual(normalize_city_key(key), key)

    def test_empty_input(self):
        self.assertEqual(normalize_city_key(""), "")
        self.assertEqual(normalize_city_key(None), "")


class EditDistanceTestCase(unittest.TestCase):
    def test_identity_and_empty(self):
        for s in ["", "a", "brooklyn", "queens"]:
            self.assertEqual(edit_distance(s, s), 0)
            self.assertEqual(edit_distance(s, ""), len(s))
            self.assertEqual(edit_distance("", s), len(s))

    def test_symmetric(self):
        pairs = [("kitten", "sitting"), ("brooklyn", "brookln"), ("a", "abc"), ("flaw", "lawn")]
        for a, b in pairs:
            self.assertEqual(edit_distance(a, b), edit_distance(b, a))

    def test_known_distances(self):
        self.assertEqual(edit_distance("kitten", "sitting"), 3)
        self.assertEqual(edit_distance("flaw", "lawn"), 2)
        self.assertEqual(edit_distance("brooklyn", "brookln"), 1)
        self.assertEqual(edit_distance("brooklyn", "brooklin"), 1)
        self.assertEqual(edit_distance("brooklyn", "bruklin"), 3)


class MatchCitiesTestCase(unittest.TestCase):
    def test_exact_city_among_several(self):
        self.assertEqual(match_cities({"Brooklyn", "Queens", "Bronx"}, "brooklyn"), {"Brooklyn"})

    def test_typo_within_two_edits(self):
        self.assertEqual(match_cities({"Brooklyn"}, "brooklin"), {"Brooklyn"})

    def test_unrelated_query_matches_nothing(self):
        self.assertEqual(match_cities({"Brooklyn"}, "xyz123"), set())

    def test_prefix_and_substring(self):
        cities = {"Brooklyn", "Bronx", "Queens"}
        self.assertEqual(match_cities(cities, "bro"), {"Brooklyn", "Bronx"})
        self.assertEqual(match_cities(cities, "ueen"), {"Queens"})

    def test_punctuation_is_ignored(self):
        self.assertEqual(match_cities({"St. Paul", "Minneapolis"}, "stpaul"), {"St. Paul"})
        self.assertEqual(match_cities({"Winston-Salem"}, "winston salem"), {"Winston-Salem"})

    def test_empty_query_matches_nothing(self):
        self.assertEqual(match_cities({"Brooklyn", "Queens"}, ""), set())
        self.assertEqual(match_cities({"Brooklyn", "Queens"}, None), set())

    def test_query_without_letters_matches_every_city(self):
        cities = {"Brooklyn", "Queens"}
        self.assertEqual(match_cities(cities, "123"), {"Brooklyn", "Queens"})
        self.assertEqual(
            match_cities(cities, "123"),
            {c for c in cities if normalize_city_key("123") in normalize_city_key(c)},
        )

    def test_city_with_empty_key_is_skipped(self):
        self.assertEqual(match_cities({"12345", "Queens"}, "123"), {"Queens"})
        self.assertEqual(match_cities({"12345"}, "123"), set())

    def test_threshold_is_configurable(self):
        self.assertEqual(match_cities({"Brooklyn"}, "brooklin", max_distance=0), set())
        self.assertEqual(match_cities({"Queens"}, "qeens", max_distance=1), {"Queens"})
        self.assertEqual(match_cities({"Queens"}, "kweens", max_distance=1), set())
        self.assertEqual(match_cities({"Queens"}, "kweens", max_distance=2), {"Queens"})

    def test_short_names_over_match_by_design(self):
        # Two edits cover any two-letter city.
        self.assertEqual(match_cities({"Ur"}, "ab"), {"Ur"})


if __name__ == "__main__":
    unittest.main()
