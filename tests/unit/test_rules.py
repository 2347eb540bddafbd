"""规则引擎测试"""
import pytest

from core.cards import Card, Color, Rank, wild_card
from core.rules import RuleEngine


RED_FIVE = Card(Color.RED, Rank.FIVE)


class TestIsValidPlay:
    """出牌合法性测试"""

    def test_same_color(self):
        assert RuleEngine.is_valid_play(Card(Color.RED, Rank.NINE), RED_FIVE)

    def test_same_rank(self):
        assert RuleEngine.is_valid_play(Card(Color.BLUE, Rank.FIVE), RED_FIVE)

    def test_wild_always_valid(self):
        assert RuleEngine.is_valid_play(wild_card(), RED_FIVE)
        assert RuleEngine.is_valid_play(wild_card(Rank.DRAW_FOUR), RED_FIVE, Color.GREEN)

    def test_mismatch(self):
        assert not RuleEngine.is_valid_play(Card(Color.BLUE, Rank.SIX), RED_FIVE)

    def test_chosen_color_overrides_top_card(self):
        top = wild_card()
        assert RuleEngine.is_valid_play(Card(Color.GREEN, Rank.TWO), top, Color.GREEN)
        assert not RuleEngine.is_valid_play(Card(Color.RED, Rank.TWO), top, Color.GREEN)

    def test_action_rank_match(self):
        top = Card(Color.RED, Rank.SKIP)
        assert RuleEngine.is_valid_play(Card(Color.BLUE, Rank.SKIP), top)

    def test_playable_cards_keeps_order(self):
        hand = [Card(Color.BLUE, Rank.SIX), Card(Color.RED, Rank.ONE), wild_card()]
        assert RuleEngine.playable_cards(hand, RED_FIVE) == hand[1:]


class TestTurnOrder:
    """回合顺序测试"""

    @pytest.mark.parametrize("current,n,clockwise,expected", [
        (0, 3, True, 1),
        (2, 3, True, 0),
        (0, 3, False, 2),
        (1, 2, False, 0),
    ])
    def test_next_index(self, current, n, clockwise, expected):
        assert RuleEngine.next_index(current, n, clockwise) == expected

    def test_skips(self):
        for rank in (Rank.SKIP, Rank.DRAW_TWO):
            assert RuleEngine.skips_next_player(Card(Color.RED, rank), 3)
        assert RuleEngine.skips_next_player(wild_card(Rank.DRAW_FOUR), 3)
        assert not RuleEngine.skips_next_player(wild_card(), 3)

    def test_reverse_skips_only_with_two_players(self):
        reverse = Card(Color.RED, Rank.REVERSE)
        assert RuleEngine.skips_next_player(reverse, 2)
        assert not RuleEngine.skips_next_player(reverse, 3)

    def test_draw_penalty(self):
        assert RuleEngine.draw_penalty(Card(Color.RED, Rank.DRAW_TWO)) == 2
        assert RuleEngine.draw_penalty(wild_card(Rank.DRAW_FOUR)) == 4
        assert RuleEngine.draw_penalty(Card(Color.RED, Rank.SKIP)) == 0


class TestUno:
    """UNO 声明条件测试"""

    def test_two_cards(self):
        hand = [Card(Color.BLUE, Rank.ONE), Card(Color.GREEN, Rank.TWO)]
        assert RuleEngine.can_declare_uno(hand, RED_FIVE)

    def test_matching_card(self):
        hand = [Card(Color.BLUE, Rank.ONE), Card(Color.GREEN, Rank.TWO), Card(Color.RED, Rank.NINE)]
        assert RuleEngine.can_declare_uno(hand, RED_FIVE)

    def test_no_match(self):
        hand = [Card(Color.BLUE, Rank.ONE), Card(Color.GREEN, Rank.TWO), Card(Color.BLUE, Rank.NINE)]
        assert not RuleEngine.can_declare_uno(hand, RED_FIVE)


class TestScoringAndStart:
    """得分与起始牌测试"""

    def test_score_for_card(self):
        assert RuleEngine.score_for_card(Card(Color.RED, Rank.EIGHT)) == 8
        assert RuleEngine.score_for_card(Card(Color.RED, Rank.REVERSE)) == 20
        assert RuleEngine.score_for_card(wild_card()) == 50

    def test_starting_card(self):
        assert RuleEngine.is_valid_starting_card(Card(Color.RED, Rank.ZERO))
        assert not RuleEngine.is_valid_starting_card(Card(Color.RED, Rank.SKIP))
        assert not RuleEngine.is_valid_starting_card(wild_card())
