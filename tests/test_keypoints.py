# =============================================================================
# Unit Tests — Key-Point Extractor
# =============================================================================

from concord.consensus.keypoints import extract_key_points


class TestExtractKeyPoints:
    def test_single_sentence(self):
        assert extract_key_points("The capital of France is Paris.") == [
            "the capital of france is paris"
        ]

    def test_short_fragments_dropped(self):
        points = extract_key_points("Yes. It is. The answer is definitely yes!")
        assert points == ["the answer is definitely yes"]

    def test_numbers_kept_verbatim_with_percent(self):
        points = extract_key_points("Revenue grew 12.5% to 340 million in 2023.")
        assert points[-3:] == ["12.5%", "340", "2023"]

    def test_quoted_text_lower_cased(self):
        points = extract_key_points('The installer shows "File Not Found" on startup.')
        assert points[-1] == '"file not found"'

    def test_groups_in_order(self):
        points = extract_key_points('Refunds take 30 days to process. Look for "Refund Issued".')
        assert points == [
            "refunds take 30 days to process",
            'look for "refund issued"',
            "30",
            '"refund issued"',
        ]

    def test_duplicates_preserved(self):
        points = extract_key_points("Paris is the capital city. Paris is the capital city.")
        assert points == ["paris is the capital city", "paris is the capital city"]

    def test_empty_answer(self):
        assert extract_key_points("") == []
