from unittest import TestCase, mock

from autoencode.catalog import TMDBClient, TVMazeClient, XEMClient
from autoencode.config import default_config
from autoencode.errors import MissingInfoError


class TVMazeNormalizeTests(TestCase):
    def test_search_result(self) -> None:
        raw = {
            "score": 0.91,
            "show": {
                "id": 82,
                "name": "Game of Thrones",
                "weight": 99,
                "premiered": "2011-04-17",
                "summary": "<p>Seven noble families fight.</p>",
                "externals": {"thetvdb": 121361, "imdb": "tt0944947"},
                "image": {"original": "https://img/got.jpg"},
                "_embedded": {"akas": [{"name": "Le Trône de fer"}, {"name": None}]},
            },
        }
        match = TVMazeClient.normalize_series(raw)
        self.assertEqual(match.id, 82)
        self.assertEqual(match.search_score, 0.91)
        self.assertEqual(match.popularity, 99)
        self.assertEqual(match.tvdb_id, 121361)
        self.assertEqual(match.year, 2011)
        self.assertEqual(match.description, "Seven noble families fight.")
        self.assertEqual(match.aliases, ["Le Trône de fer"])

    def test_episode(self) -> None:
        episode = TVMazeClient.normalize_episode({"id": 4952, "name": "Winter Is Coming", "season": 1, "number": 1})
        self.assertEqual((episode.season, episode.episode, episode.title), (1, 1, "Winter Is Coming"))


class TMDBTests(TestCase):
    def setUp(self) -> None:
        self.config = default_config()
        self.config["catalog"]["tmdb"]["api_key"] = "secret"

    def test_normalize_movie(self) -> None:
        client = TMDBClient(self.config)
        match = client.normalize_movie(
            {
                "id": 603,
                "title": "The Matrix",
                "original_title": "The Matrix",
                "popularity": 250.3,
                "release_date": "1999-03-30",
                "poster_path": "/m.jpg",
            }
        )
        self.assertEqual(match.popularity, 100.0)
        self.assertEqual(match.aliases, [])
        self.assertEqual(match.poster, "https://image.tmdb.org/t/p/w500/m.jpg")

    def test_missing_key(self) -> None:
        self.config["catalog"]["tmdb"]["api_key"] = ""
        client = TMDBClient(self.config)
        with self.assertRaises(MissingInfoError):
            client.search("The Matrix")

    def test_search_passes_year(self) -> None:
        client = TMDBClient(self.config)
        payload = {"results": [{"id": 603, "title": "The Matrix", "release_date": "1999-03-30"}]}
        with mock.patch.object(TMDBClient, "get_json", return_value=payload) as get_json:
            results = client.search("The Matrix", 1999)
        self.assertEqual([r.id for r in results], [603])
        params = get_json.call_args[0][1]
        self.assertEqual(params["year"], 1999)
        self.assertEqual(params["api_key"], "secret")


class XEMTests(TestCase):
    def test_unknown_series(self) -> None:
        client = XEMClient(default_config())
        with mock.patch.object(XEMClient, "get_json", return_value={"result": "failure", "data": []}):
            with self.assertRaises(MissingInfoError):
                client.mapping(1234)

    def test_mapping(self) -> None:
        client = XEMClient(default_config())
        data = [{"scene": {"season": 1, "episode": 1}, "tvdb": {"season": 1, "episode": 1}}]
        with mock.patch.object(XEMClient, "get_json", return_value={"result": "success", "data": data}):
            self.assertEqual(client.mapping(1234), data)
