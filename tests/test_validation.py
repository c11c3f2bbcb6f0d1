import unittest
from model_metadata.utils.validation import validate_static_catalog


def _catalog(**model_overrides):
    model = {
        "name": "static-model",
        "provider": "Example",
        "artifacts": [{"uri": "oci://registry.example.com/static:1.0", "createTimeSinceEpoch": "1000"}],
    }
    model.update(model_overrides)
    return {"source": "Example", "models": [model]}


class TestValidateStaticCatalog(unittest.TestCase):
    def test_valid_catalog(self):
        is_valid, errors = validate_static_catalog(_catalog())
        self.assertTrue(is_valid)
        self.assertEqual(errors, [])

    def test_integer_timestamps_allowed(self):
        is_valid, _ = validate_static_catalog(_catalog(createTimeSinceEpoch=1736899200000))
        self.assertTrue(is_valid)

    def test_missing_source(self):
        is_valid, errors = validate_static_catalog({"models": []})
        self.assertFalse(is_valid)
        self.assertTrue(any(error.startswith("[root]") and "source" in error for error in errors))

    def test_model_without_artifacts(self):
        is_valid, errors = validate_static_catalog(_catalog(artifacts=[]))
        self.assertFalse(is_valid)
        self.assertTrue(any("models -> 0 -> artifacts" in error for error in errors))

    def test_artifact_without_uri(self):
        is_valid, errors = validate_static_catalog(_catalog(artifacts=[{"createTimeSinceEpoch": "1"}]))
        self.assertFalse(is_valid)
        self.assertTrue(any("uri" in error for error in errors))

    def test_not_a_mapping(self):
        is_valid, errors = validate_static_catalog(["source"])
        self.assertFalse(is_valid)
        self.assertEqual(len(errors), 1)


if __name__ == '__main__':
    unittest.main()
