import unittest

from dbkit.domain.repository import RepositoryRef, is_commit_sha, parse_repository
from dbkit.errors import ParseError


SHA = "0123456789abcdef0123456789abcdef01234567"


class TestRepositoryRef(unittest.TestCase):
    def test_branch_ref_round_trips(self) -> None:
        ref = parse_repository("acme/widgets@main")
        self.assertEqual("acme", ref.owner)
        self.assertEqual("widgets", ref.name)
        self.assertEqual("main", ref.branch)
        self.assertIsNone(ref.commit)
        self.assertEqual("refs/heads/main", ref.reference)
        self.assertEqual("acme/widgets@main", str(ref))
        self.assertEqual(ref, parse_repository(str(ref)))

    def test_forty_hex_ref_is_a_commit(self) -> None:
        ref = parse_repository(f"acme/widgets@{SHA}")
        self.assertEqual(SHA, ref.commit)
        self.assertIsNone(ref.branch)
        self.assertIsNone(ref.reference)
        self.assertEqual(f"acme/widgets@{SHA}", str(ref))

    def test_short_hex_ref_is_a_branch(self) -> None:
        ref = parse_repository("acme/widgets@abc123")
        self.assertEqual("abc123", ref.branch)
        self.assertIsNone(ref.commit)

    def test_sub_path_is_kept(self) -> None:
        ref = parse_repository("acme/widgets/src/app@dev")
        self.assertEqual("src/app", ref.path)
        self.assertEqual("dev", ref.branch)
        self.assertEqual("acme/widgets/src/app@dev", str(ref))

    def test_bare_slug(self) -> None:
        ref = RepositoryRef.parse("  acme/widgets  ")
        self.assertEqual("acme/widgets", ref.slug)
        self.assertEqual("https://github.com/acme/widgets.git", ref.clone_url())
        self.assertEqual("https://ghe.example.com/acme/widgets.git", ref.clone_url("https://ghe.example.com/"))

    def test_malformed_inputs_raise_parse_error(self) -> None:
        for bad in ("", "acme", "acme/", "/widgets", "acme/wid gets", "acme/widgets@"):
            with self.subTest(bad=bad):
                with self.assertRaises(ParseError):
                    parse_repository(bad)

    def test_constructor_validates(self) -> None:
        with self.assertRaises(ParseError):
            RepositoryRef(owner="acme", name="widgets", commit="nothex")
        with self.assertRaises(ParseError):
            RepositoryRef(owner="acme", name="widgets", branch="")

    def test_with_commit_returns_new_value(self) -> None:
        ref = parse_repository("acme/widgets@main")
        pinned = ref.with_commit(SHA)
        self.assertIsNone(ref.commit)
        self.assertEqual(SHA, pinned.commit)
        self.assertEqual("main", pinned.branch)

    def test_parse_error_is_a_value_error(self) -> None:
        self.assertTrue(issubclass(ParseError, ValueError))

    def test_is_commit_sha(self) -> None:
        self.assertTrue(is_commit_sha(SHA))
        self.assertTrue(is_commit_sha(SHA.upper()))
        self.assertFalse(is_commit_sha(SHA[:-1]))
        self.assertFalse(is_commit_sha(""))


if __name__ == "__main__":
    unittest.main()
