import unittest
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import requests

from model_metadata.clients.hub import KNOWN_VALIDATED_COLLECTIONS, HubClient


def _info(**overrides):
    fields = dict(
        id="RedHatAI/granite-3.1-8b-instruct",
        author="RedHatAI",
        sha="abc123",
        downloads=42,
        likes=3,
        tags=["granite", "en"],
        card_data={"license": "apache-2.0"},
        pipeline_tag="text-generation",
        library_name="vllm",
        created_at=datetime(2024, 12, 18, tzinfo=timezone.utc),
        last_modified=None,
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestHubDetails(unittest.TestCase):
    def test_fetch_details(self):
        api = MagicMock()
        api.model_info.return_value = _info()
        details = HubClient(api=api, session=MagicMock(), timeout=7).fetch_details("RedHatAI/granite-3.1-8b-instruct")

        api.model_info.assert_called_once_with("RedHatAI/granite-3.1-8b-instruct", timeout=7)
        self.assertEqual(details.id, "RedHatAI/granite-3.1-8b-instruct")
        self.assertEqual(details.license, "apache-2.0")
        self.assertEqual(details.downloads, 42)
        self.assertEqual(details.library_name, "vllm")
        self.assertEqual(details.created_at, "2024-12-18T00:00:00+00:00")
        self.assertIsNone(details.last_modified)

    def test_missing_optional_fields(self):
        api = MagicMock()
        api.model_info.return_value = _info(card_data=None, downloads=None, tags=None)
        details = HubClient(api=api, session=MagicMock()).fetch_details("x/y")
        self.assertIsNone(details.license)
        self.assertEqual(details.downloads, 0)
        self.assertEqual(details.tags, [])

    def test_unavailable_model(self):
        api = MagicMock()
        api.model_info.side_effect = RuntimeError("404")
        self.assertIsNone(HubClient(api=api, session=MagicMock()).fetch_details("x/y"))


class TestHubReadme(unittest.TestCase):
    def _session(self, status=200, text="# README"):
        response = MagicMock()
        response.status_code = status
        response.text = text
        response.encoding = "utf-8"
        session = MagicMock()
        session.get.return_value = response
        return session

    def test_fetch_readme(self):
        session = self._session()
        client = HubClient(token="hf_token", api=MagicMock(), session=session)

        self.assertEqual(client.fetch_readme("RedHatAI/model"), "# README")
        url = session.get.call_args.args[0]
        self.assertIn("RedHatAI/model", url)
        self.assertTrue(url.endswith("README.md"))
        self.assertEqual(session.get.call_args.kwargs["headers"], {"Authorization": "Bearer hf_token"})

    def test_missing_readme(self):
        client = HubClient(api=MagicMock(), session=self._session(status=404))
        self.assertIsNone(client.fetch_readme("RedHatAI/model"))

    def test_network_error(self):
        session = MagicMock()
        session.get.side_effect = requests.Timeout("slow")
        self.assertIsNone(HubClient(api=MagicMock(), session=session).fetch_readme("RedHatAI/model"))


class TestHubCollections(unittest.TestCase):
    def test_validated_collections_by_title(self):
        api = MagicMock()
        api.list_collections.return_value = [
            SimpleNamespace(slug="RedHatAI/validated-may", title="Red Hat AI validated models - May 2025"),
            SimpleNamespace(slug="RedHatAI/other", title="Speculative decoding"),
        ]
        slugs = HubClient(api=api, session=MagicMock()).list_validated_collections()
        self.assertEqual(slugs, ["RedHatAI/validated-may"])

    def test_falls_back_to_known_collections(self):
        api = MagicMock()
        api.list_collections.side_effect = RuntimeError("offline")
        self.assertEqual(
            HubClient(api=api, session=MagicMock()).list_validated_collections(), KNOWN_VALIDATED_COLLECTIONS
        )

        api.list_collections.side_effect = None
        api.list_collections.return_value = []
        self.assertEqual(
            HubClient(api=api, session=MagicMock()).list_validated_collections(), KNOWN_VALIDATED_COLLECTIONS
        )

    def test_collection_models(self):
        collection = SimpleNamespace(items=[
            SimpleNamespace(item_type="model", item_id="RedHatAI/model-a"),
            SimpleNamespace(item_type="dataset", item_id="RedHatAI/data"),
        ])
        entries = HubClient(api=MagicMock(), session=MagicMock()).collection_models(collection)
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].url, "https://huggingface.co/RedHatAI/model-a")
        self.assertEqual(entries[0].readme_path, "/RedHatAI/model-a/README.md")


if __name__ == '__main__':
    unittest.main()
