"""游戏会话测试"""
import pytest
import random
from collections import Counter

from core.accounts import AccountStoreError, InMemoryAccountStore
from core.cards import Card, Color, Rank, wild_card, FULL_DECK
from core.config import GameConfig
from core.events import EventBus, EventType
from core.player import Player
from core.session import GameSession, Phase


RED_THREE = Card(Color.RED, Rank.THREE)
RED_FIVE = Card(Color.RED, Rank.FIVE)
BLUE_FIVE = Card(Color.BLUE, Rank.FIVE)
GREEN_ONE = Card(Color.GREEN, Rank.ONE)
GREEN_TWO = Card(Color.GREEN, Rank.TWO)
GREEN_SIX = Card(Color.GREEN, Rank.SIX)
BLUE_NINE = Card(Color.BLUE, Rank.NINE)


class FailingStore(InMemoryAccountStore):
    def replace_all(self, records):
        raise AccountStoreError("disk full")


class TestNewSession:
    """新对局测试"""

    def test_create(self):
        session = GameSession.create("alice", num_bots=2, rng=random.Random(1))
        names = [p.username for p in session.players]
        assert names == ["alice", "Bot 1", "Bot 2"]
        assert [p.is_bot for p in session.players] == [False, True, True]
        assert all(len(p) == 7 for p in session.players)
        assert session.current_player_index == 0
        assert session.direction_clockwise
        assert session.phase == Phase.AWAITING_PLAY

    def test_starting_card(self):
        for seed in range(20):
            session = GameSession.create("alice", rng=random.Random(seed))
            assert not session.current_card.is_action
            assert session.deck.top_discard == session.current_card
            assert session.total_cards() == 108

    def test_card_multiset_is_the_full_deck(self):
        session = GameSession.create("alice", num_bots=3, rng=random.Random(3))
        cards = session.deck.undrawn_cards + session.deck.discarded_cards
        for player in session.players:
            cards += player.hand
        assert Counter(cards) == Counter(FULL_DECK)

    def test_same_seed_same_deal(self):
        s1 = GameSession.create("alice", rng=random.Random(5))
        s2 = GameSession.create("alice", rng=random.Random(5))
        assert s1.players[0].hand == s2.players[0].hand
        assert s1.current_card == s2.current_card

    def test_config_seed(self):
        config = GameConfig(seed=9)
        s1 = GameSession.create("alice", config=config)
        s2 = GameSession.create("alice", config=config)
        assert s1.players[1].hand == s2.players[1].hand

    def test_needs_two_players(self):
        with pytest.raises(ValueError):
            GameSession([Player("alice")])


class TestRestore:
    """恢复会话测试"""

    def test_index_out_of_range(self, session_factory):
        with pytest.raises(ValueError):
            session_factory([[RED_FIVE], [GREEN_ONE]], RED_THREE, current_index=2)

    def test_restored_game_already_over(self, session_factory):
        session, _ = session_factory([[RED_FIVE], []], RED_THREE)
        assert session.phase == Phase.GAME_OVER
        assert session.winner is session.players[1]


class TestPlayCard:
    """出牌测试"""

    def test_valid_play_passes_turn(self, session_factory):
        session, recorder = session_factory(
            [[RED_FIVE, BLUE_FIVE, GREEN_SIX], [GREEN_ONE, GREEN_TWO]], RED_THREE,
        )
        human = session.players[0]
        assert session.play_card(RED_FIVE, human)
        assert session.current_card == RED_FIVE
        assert session.deck.top_discard == RED_FIVE
        assert session.current_player_index == 1
        assert human.hand == [BLUE_FIVE, GREEN_SIX]
        assert human.score == 5
        turn = recorder.of_type(EventType.TURN_CHANGED)[-1]
        assert turn.player is session.players[1]

    def test_uno_penalty(self, session_factory):
        session, recorder = session_factory([[RED_FIVE, BLUE_FIVE], [GREEN_ONE, GREEN_TWO]], RED_THREE)
        human = session.players[0]
        assert session.play_card(RED_FIVE, human)
        assert session.current_card == RED_FIVE
        assert session.current_player_index == 1
        assert len(human) == 3
        penalties = recorder.of_type(EventType.PENALTY_APPLIED)
        assert len(penalties) == 1
        assert penalties[0].player is human

    def test_declared_uno_avoids_penalty(self, session_factory):
        session, recorder = session_factory([[RED_FIVE, BLUE_FIVE], [GREEN_ONE, GREEN_TWO]], RED_THREE)
        human = session.players[0]
        assert session.declare_uno(human)
        assert session.play_card(RED_FIVE, human)
        assert human.hand == [BLUE_FIVE]
        assert not recorder.of_type(EventType.PENALTY_APPLIED)
        assert not human.has_declared_uno()

    def test_invalid_play(self, session_factory):
        session, recorder = session_factory([[BLUE_NINE, GREEN_SIX], [GREEN_ONE]], RED_THREE)
        human = session.players[0]
        assert not session.play_card(BLUE_NINE, human)
        assert session.current_card == RED_THREE
        assert session.current_player_index == 0
        assert len(human) == 2
        assert recorder.events == []

    def test_not_your_turn(self, session_factory):
        session, _ = session_factory([[RED_FIVE, GREEN_SIX], [Card(Color.RED, Rank.ONE)]], RED_THREE)
        bot = session.players[1]
        assert not session.play_card(Card(Color.RED, Rank.ONE), bot)
        assert len(bot) == 1

    def test_card_not_in_hand(self, session_factory):
        session, _ = session_factory([[GREEN_SIX, BLUE_NINE], [GREEN_ONE]], RED_THREE)
        assert not session.play_card(RED_FIVE, session.players[0])
        assert session.current_card == RED_THREE

    def test_bot_scores_nothing(self, session_factory):
        session, _ = session_factory(
            [[GREEN_SIX, BLUE_NINE], [RED_FIVE, GREEN_ONE, GREEN_TWO]], RED_THREE, current_index=1,
        )
        bot = session.players[1]
        assert session.play_card(RED_FIVE, bot)
        assert bot.score == 0

    def test_total_cards_unchanged(self, session_factory):
        session, _ = session_factory([[RED_FIVE, BLUE_FIVE], [GREEN_ONE, GREEN_TWO]], RED_THREE)
        before = session.total_cards()
        session.play_card(RED_FIVE, session.players[0])
        assert session.total_cards() == before


class TestActionCards:
    """功能牌效果测试"""

    def _three_players(self, session_factory, card):
        hands = [
            [card, GREEN_SIX, BLUE_NINE],
            [GREEN_ONE, GREEN_TWO, BLUE_NINE],
            [GREEN_ONE, GREEN_TWO, BLUE_NINE],
        ]
        return session_factory(hands, RED_THREE)

    def test_skip(self, session_factory):
        session, _ = self._three_players(session_factory, Card(Color.RED, Rank.SKIP))
        session.play_card(Card(Color.RED, Rank.SKIP), session.players[0])
        assert session.current_player_index == 2

    def test_reverse_three_players(self, session_factory):
        session, recorder = self._three_players(session_factory, Card(Color.RED, Rank.REVERSE))
        session.play_card(Card(Color.RED, Rank.REVERSE), session.players[0])
        assert not session.direction_clockwise
        assert session.current_player_index == 2
        changed = recorder.of_type(EventType.DIRECTION_CHANGED)
        assert len(changed) == 1 and changed[0].clockwise is False

    def test_reverse_two_players_acts_like_skip(self, session_factory):
        reverse = Card(Color.RED, Rank.REVERSE)
        session, _ = session_factory([[reverse, GREEN_SIX, BLUE_NINE], [GREEN_ONE, GREEN_TWO]], RED_THREE)
        session.play_card(reverse, session.players[0])
        assert not session.direction_clockwise
        assert session.current_player_index == 0

    def test_draw_two(self, session_factory):
        draw_two = Card(Color.RED, Rank.DRAW_TWO)
        session, _ = self._three_players(session_factory, draw_two)
        session.play_card(draw_two, session.players[0])
        assert len(session.players[1]) == 5
        assert session.current_player_index == 2

    def test_draw_four_with_chosen_color(self, session_factory):
        bus = EventBus(color_resolver=lambda player, card: Color.BLUE)
        draw_four = wild_card(Rank.DRAW_FOUR)
        hands = [
            [draw_four, GREEN_SIX, GREEN_TWO],
            [GREEN_ONE, GREEN_TWO, BLUE_NINE],
            [GREEN_ONE, GREEN_TWO, BLUE_NINE],
        ]
        session, recorder = session_factory(hands, RED_THREE, event_bus=bus)
        session.play_card(draw_four, session.players[0])
        assert session.current_color == Color.BLUE
        assert session.effective_color == Color.BLUE
        assert len(session.players[1]) == 7
        assert session.current_player_index == 2
        assert session.players[0].score == 50
        assert len(recorder.of_type(EventType.COLOR_REQUESTED)) == 1

    def test_wild_without_resolver_picks_automatically(self, session_factory):
        session, _ = session_factory(
            [[wild_card(), GREEN_SIX, GREEN_TWO], [GREEN_ONE, GREEN_TWO]], RED_THREE,
        )
        session.play_card(wild_card(), session.players[0])
        assert session.current_color == Color.GREEN
        assert session.current_player_index == 1

    def test_bot_wild_picks_automatically(self, session_factory):
        session, recorder = session_factory(
            [[GREEN_SIX, GREEN_TWO], [wild_card(), BLUE_NINE, BLUE_FIVE]], RED_THREE, current_index=1,
        )
        session.play_card(wild_card(), session.players[1])
        assert session.current_color == Color.BLUE
        assert not recorder.of_type(EventType.COLOR_REQUESTED)

    def test_color_cleared_by_colored_card(self, session_factory):
        session, _ = session_factory(
            [[BLUE_NINE, GREEN_SIX, GREEN_TWO], [GREEN_ONE, GREEN_TWO]],
            wild_card(), current_color=Color.BLUE,
        )
        assert session.is_valid_play(BLUE_NINE)
        assert not session.is_valid_play(GREEN_SIX)
        session.play_card(BLUE_NINE, session.players[0])
        assert session.current_color is None
        assert session.effective_color == Color.BLUE

    def test_set_current_color(self, session_factory):
        session, _ = session_factory([[GREEN_SIX], [GREEN_ONE]], wild_card())
        session.set_current_color(Color.YELLOW)
        assert session.current_color == Color.YELLOW
        with pytest.raises(ValueError):
            session.set_current_color(Color.WILD)


class TestDraw:
    """摸牌测试"""

    def test_unplayable_draw_ends_turn(self, session_factory):
        session, _ = session_factory(
            [[BLUE_NINE, GREEN_SIX], [GREEN_ONE]], RED_THREE,
            undrawn=[Card(Color.YELLOW, Rank.ONE)],
        )
        human = session.players[0]
        assert session.draw_card_for_player(human) is None
        assert len(human) == 3
        assert session.current_player_index == 1

    def test_playable_draw_keeps_turn(self, session_factory):
        drawn = Card(Color.RED, Rank.ONE)
        session, _ = session_factory([[BLUE_NINE, GREEN_SIX], [GREEN_ONE]], RED_THREE, undrawn=[drawn])
        human = session.players[0]
        assert session.draw_card_for_player(human) == drawn
        assert session.current_player_index == 0
        assert session.drawn_this_turn
        assert session.play_card(drawn, human)
        assert session.current_player_index == 1
        assert not session.drawn_this_turn

    def test_pass_after_draw(self, session_factory):
        drawn = Card(Color.RED, Rank.ONE)
        session, _ = session_factory([[BLUE_NINE, GREEN_SIX], [GREEN_ONE]], RED_THREE, undrawn=[drawn])
        human = session.players[0]
        assert not session.pass_turn(human)
        session.draw_card_for_player(human)
        assert session.pass_turn(human)
        assert session.current_player_index == 1
        assert human.has_card(drawn)

    def test_draw_reshuffles_discard(self, session_factory):
        session, _ = session_factory([[BLUE_NINE, GREEN_SIX], [GREEN_ONE]], RED_THREE, undrawn=[])
        top = Card(Color.YELLOW, Rank.TWO)
        session.deck.add_to_discard_pile(top)
        human = session.players[0]
        assert session.draw_card_for_player(human) == RED_THREE
        assert human.has_card(RED_THREE)
        assert session.deck.discarded_cards == [top]


class TestTurnResolving:
    """结算期间的重入测试"""

    def test_play_during_resolution_rejected(self, session_factory):
        session, _ = session_factory(
            [[RED_FIVE, BLUE_FIVE, GREEN_SIX], [GREEN_ONE, GREEN_TWO]], RED_THREE,
        )
        human = session.players[0]
        attempts = []

        def replay(event):
            attempts.append((session.phase, session.play_card(BLUE_FIVE, human)))

        session.events.subscribe(replay, EventType.STATUS_UPDATED)
        assert session.play_card(RED_FIVE, human)
        assert attempts == [(Phase.TURN_RESOLVING, False)]
        assert human.hand == [BLUE_FIVE, GREEN_SIX]
        assert session.current_card == RED_FIVE
        assert session.current_player_index == 1
        assert session.phase == Phase.AWAITING_PLAY

    def test_pass_during_draw_rejected(self, session_factory):
        drawn = Card(Color.RED, Rank.ONE)
        session, _ = session_factory([[BLUE_NINE, GREEN_SIX], [GREEN_ONE]], RED_THREE, undrawn=[drawn])
        human = session.players[0]
        attempts = []
        session.events.subscribe(
            lambda e: attempts.append(session.pass_turn(human)), EventType.STATUS_UPDATED,
        )
        assert session.draw_card_for_player(human) == drawn
        assert attempts == [False]
        assert session.current_player_index == 0
        assert session.phase == Phase.AWAITING_PLAY
        assert session.play_card(drawn, human)


class TestBots:
    """机器人回合测试"""

    def test_prefers_action_cards(self, session_factory):
        skip = Card(Color.GREEN, Rank.SKIP)
        session, _ = session_factory(
            [[BLUE_NINE, GREEN_SIX], [GREEN_ONE, skip, Card(Color.RED, Rank.SEVEN)]],
            Card(Color.GREEN, Rank.THREE), current_index=1,
        )
        assert session.bot_decide_card_to_play(session.players[1]) == skip

    def test_nothing_to_play(self, session_factory):
        session, _ = session_factory(
            [[BLUE_NINE], [BLUE_FIVE, BLUE_NINE]], RED_THREE, current_index=1,
        )
        assert session.bot_decide_card_to_play(session.players[1]) is None

    def test_bot_declares_uno(self, session_factory):
        session, recorder = session_factory(
            [[BLUE_NINE, GREEN_SIX], [GREEN_ONE, BLUE_FIVE]],
            Card(Color.GREEN, Rank.THREE), current_index=1,
        )
        bot = session.players[1]
        played = session.play_bot_turn(bot)
        assert played == GREEN_ONE
        assert bot.hand == [BLUE_FIVE]
        assert len(recorder.of_type(EventType.UNO_DECLARED)) == 1
        assert not recorder.of_type(EventType.PENALTY_APPLIED)
        action = recorder.of_type(EventType.BOT_ACTION)[-1]
        assert action.player is bot and action.card == GREEN_ONE
        assert session.current_player_index == 0

    def test_bot_draws(self, session_factory):
        session, recorder = session_factory(
            [[BLUE_NINE, GREEN_SIX], [BLUE_FIVE, BLUE_NINE]], RED_THREE, current_index=1,
            undrawn=[Card(Color.YELLOW, Rank.ONE)],
        )
        bot = session.players[1]
        assert session.play_bot_turn(bot) is None
        assert len(bot) == 3
        assert session.current_player_index == 0
        action = recorder.of_type(EventType.BOT_ACTION)[-1]
        assert action.card is None

    def test_bot_plays_drawn_card(self, session_factory):
        drawn = Card(Color.RED, Rank.EIGHT)
        session, _ = session_factory(
            [[BLUE_NINE, GREEN_SIX], [BLUE_FIVE, BLUE_NINE, BLUE_NINE]], RED_THREE,
            current_index=1, undrawn=[drawn],
        )
        assert session.play_bot_turn(session.players[1]) == drawn
        assert session.current_card == drawn


class TestUno:
    """UNO 声明测试"""

    def test_cannot_declare(self, session_factory):
        session, recorder = session_factory(
            [[BLUE_NINE, GREEN_SIX, GREEN_TWO], [GREEN_ONE]], RED_THREE,
        )
        human = session.players[0]
        assert not session.declare_uno(human)
        assert not human.has_declared_uno()
        assert len(recorder.of_type(EventType.UNO_DECLARATION_FAILED)) == 1

    def test_declare_with_matching_card(self, session_factory):
        session, _ = session_factory(
            [[BLUE_NINE, GREEN_SIX, RED_FIVE], [GREEN_ONE]], RED_THREE,
        )
        assert session.declare_uno(session.players[0])


class TestGameOver:
    """游戏结束测试"""

    def test_human_wins(self, session_factory):
        store = InMemoryAccountStore()
        session, recorder = session_factory(
            [[RED_FIVE], [GREEN_ONE, GREEN_TWO]], RED_THREE, account_store=store,
        )
        human = session.players[0]
        assert session.play_card(RED_FIVE, human)

        assert session.phase == Phase.GAME_OVER
        assert session.is_game_over()
        assert session.winner is human
        record = store.get("alice")
        assert (record.games_played, record.wins, record.total_score) == (1, 1, 5)
        assert human.stats.wins == 1

        game_over = recorder.of_type(EventType.GAME_OVER)
        assert len(game_over) == 1 and game_over[0].player is human
        assert recorder.of_type(EventType.TURN_CHANGED)[-1].player is None

    def test_bot_wins(self, session_factory):
        store = InMemoryAccountStore()
        session, _ = session_factory(
            [[BLUE_NINE, GREEN_SIX], [GREEN_ONE]], Card(Color.GREEN, Rank.THREE),
            current_index=1, account_store=store,
        )
        session.play_bot_turn(session.players[1])
        assert session.winner is session.players[1]
        record = store.get("alice")
        assert (record.games_played, record.wins) == (1, 0)

    def test_no_moves_after_game_over(self, session_factory):
        session, _ = session_factory([[RED_FIVE], [RED_FIVE, GREEN_TWO]], RED_THREE)
        session.play_card(RED_FIVE, session.players[0])
        assert not session.play_card(RED_FIVE, session.players[1])
        assert session.draw_card_for_player(session.players[1]) is None
        assert not session.declare_uno(session.players[1])

    def test_store_failure_is_not_fatal(self, session_factory):
        session, recorder = session_factory(
            [[RED_FIVE], [GREEN_ONE]], RED_THREE, account_store=FailingStore(),
        )
        human = session.players[0]
        assert session.play_card(RED_FIVE, human)
        assert session.phase == Phase.GAME_OVER
        assert human.stats.games_played == 1
        assert len(recorder.of_type(EventType.GAME_OVER)) == 1
