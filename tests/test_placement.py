import tempfile
from pathlib import Path
from unittest import TestCase

from autoencode.errors import MissingInfoError
from autoencode.lookup import MediaLookup
from autoencode.model import CandidateMatch, Episode
from autoencode.placement import PlacementResolver, apply_replacements, clean_name, parse_release

from support import FakeTMDB, FakeTVMaze, make_settings, show_lookup


class NameCleaningTests(TestCase):
    def test_clean_name(self) -> None:
        self.assertEqual(clean_name("Star Wars: The Clone Wars"), "Star Wars - The Clone Wars")
        self.assertEqual(clean_name("Law & Order"), "Law and Order")
        self.assertEqual(clean_name("What If...?"), "What If…")
        self.assertEqual(clean_name("Amélie"), "Amelie")
        self.assertEqual(clean_name("- Title -"), "Title")

    def test_apply_replacements(self) -> None:
        rules = [
            {"find": "Shield", "replace": "S.H.I.E.L.D."},
            {"find": {"regexp": "o", "flags": "g"}, "replace": "0"},
            {"find": {"regexp": "A", "flags": "i"}, "replace": "4"},
        ]
        self.assertEqual(apply_replacements("Agents of Shield", rules), "4gents 0f S.H.I.E.L.D.")

    def test_regexp_group_references(self) -> None:
        rules = [{"find": {"regexp": r"^(.+) US$", "flags": ""}, "replace": "$1 (US)"}]
        self.assertEqual(apply_replacements("The Office US", rules), "The Office (US)")
        swap = [{"find": {"regexp": r"(\w+) (\w+)", "flags": ""}, "replace": "$2 $1 [$&]"}]
        self.assertEqual(apply_replacements("Who Doctor", swap), "Doctor Who [Who Doctor]")

    def test_parse_release(self) -> None:
        tv = parse_release("Show.Name.S01E02.720p.HDTV.x264")
        self.assertEqual((tv.title, tv.season, tv.episode), ("Show Name", 1, 2))
        movie = parse_release("Some.Movie.2001.1080p.BluRay.x264")
        self.assertEqual((movie.title, movie.year, movie.season), ("Some Movie", 2001, None))


class PlacementTests(TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.settings = make_settings(Path(self._tmp.name))
        self.dirs = self.settings.directories

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_tv_episode_path(self) -> None:
        resolver = PlacementResolver(self.settings, show_lookup())
        target = resolver.resolve(Path("Show.Name.S01E02.mkv"))
        self.assertEqual(target, self.dirs.tv / "Show Name" / "Season 1" / "1x02 - Episode Title.mp4")

    def test_movie_path(self) -> None:
        resolver = PlacementResolver(self.settings, show_lookup())
        target = resolver.resolve(Path("Some.Movie.2001.1080p.BluRay.x264.mkv"))
        self.assertEqual(target, self.dirs.movies / "Some Movie.mp4")

    def test_no_candidates_falls_back_to_output(self) -> None:
        lookup = MediaLookup(FakeTVMaze([], {}), FakeTMDB([]))
        resolver = PlacementResolver(self.settings, lookup)
        path = Path("Unknown.Show.S02E03.mkv")
        self.assertEqual(resolver.resolve(path), self.dirs.output / "Unknown.Show.S02E03.mp4")
        self.assertEqual(resolver.resolve(path), resolver.fallback_path(path))

    def test_missing_episode_falls_back(self) -> None:
        resolver = PlacementResolver(self.settings, show_lookup())
        path = Path("Show.Name.S05E09.mkv")
        self.assertEqual(resolver.resolve(path), resolver.fallback_path(path))

    def test_catalog_errors_fall_back(self) -> None:
        class Broken(FakeTVMaze):
            def search(self, title):
                raise MissingInfoError("no key")

        resolver = PlacementResolver(self.settings, MediaLookup(Broken([], {}), None))
        path = Path("Show.Name.S01E02.mkv")
        self.assertEqual(resolver.resolve(path), resolver.fallback_path(path))

    def test_resolution_is_memoized_by_stem(self) -> None:
        lookup = show_lookup()
        resolver = PlacementResolver(self.settings, lookup)
        first = resolver.resolve(Path("/watch/Show.Name.S01E02.mkv"))
        second = resolver.resolve(Path("/staging/Show.Name.S01E02.mkv"))
        self.assertEqual(first, second)
        self.assertEqual(lookup.tvmaze.searches, ["Show Name"])

    def test_same_title_gets_year(self) -> None:
        new = CandidateMatch(id=1, title="Doctor Who", popularity=90, release_date="2005-03-26")
        old = CandidateMatch(id=2, title="Doctor Who", popularity=90, release_date="1963-11-23")
        episodes = {1: [Episode(id=10, title="Rose", season=1, episode=1)]}
        resolver = PlacementResolver(self.settings, MediaLookup(FakeTVMaze([new, old], episodes), None))
        target = resolver.resolve(Path("Doctor.Who.S01E01.mkv"))
        self.assertEqual(target, self.dirs.tv / "Doctor Who (2005)" / "Season 1" / "1x01 - Rose.mp4")

    def test_admit_rules(self) -> None:
        resolver = PlacementResolver(self.settings, show_lookup())
        self.assertIsNone(resolver.admit(Path("notes.txt")))
        self.assertIsNone(resolver.admit(Path("show.name.s01e02-sample.mkv")))
        target = resolver.admit(Path("Show.Name.S01E02.mkv"))
        self.assertIsNotNone(target)
        target.parent.mkdir(parents=True)
        target.write_bytes(b"done")
        self.assertIsNone(resolver.admit(Path("Show.Name.S01E02.mkv")))
        self.settings.overwrite = True
        self.assertEqual(resolver.admit(Path("Show.Name.S01E02.mkv")), target)

    def test_weak_match_falls_back(self) -> None:
        weak = CandidateMatch(id=5, title="Another Show", popularity=1)
        episodes = {5: [Episode(id=50, title="Pilot", season=1, episode=1)]}
        lookup = MediaLookup(FakeTVMaze([weak], episodes), None)
        options = lookup.tv_series_options("Show Name")
        self.assertLess(options[0].match_probability, self.settings.match_threshold)
        resolver = PlacementResolver(self.settings, lookup)
        path = Path("Show.Name.S01E01.mkv")
        self.assertEqual(resolver.resolve(path), resolver.fallback_path(path))
