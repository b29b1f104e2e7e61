import unittest

from stacks.instructions import format_instructions


class InstructionsTests(unittest.TestCase):
    def test_share_url_embeds_application_id(self):
        text = format_instructions("https://x.example/prod", "sg-abc123456", "a-1")
        self.assertIn(
            "https://x.example/prod?userId=Player1&applicationId=a-1&location=us-east-2",
            text,
        )

    def test_includes_customization_guidance(self):
        text = format_instructions("https://x.example/prod", "sg-abc123456", "a-1")
        self.assertIn("?userId={Add Player Name}&applicationId={Add Application ID}&location={Add AWS Region}", text)
        self.assertTrue(text.startswith("Instructions"))

    def test_accepts_values_as_is(self):
        text = format_instructions("", "not-a-group", "")
        self.assertIn("?userId=Player1&applicationId=&location=us-east-2", text)

    def test_location_override(self):
        text = format_instructions("https://x.example/prod/", "sg-abc123456", "a-1", location="eu-central-1")
        self.assertIn("https://x.example/prod/?userId=Player1&applicationId=a-1&location=eu-central-1", text)


if __name__ == "__main__":
    unittest.main()
