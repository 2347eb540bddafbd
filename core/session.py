"""
游戏会话 - 回合状态机

GameSession 独占牌堆、手牌与回合指针，所有状态变化都经由其方法，
并通过 EventBus 通知驱动方
"""
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, Tuple
import logging
import random

from .cards import Card, Color, Rank, card_points
from .config import GameConfig
from .deck import Deck
from .events import EventBus, EventType
from .player import Player
from .rules import RuleEngine
from .accounts import AccountStore, AccountStoreError

logger = logging.getLogger(__name__)


class Phase(Enum):
    """会话阶段"""
    AWAITING_PLAY = "awaiting_play"    # 当前玩家可以出牌或摸牌
    TURN_RESOLVING = "turn_resolving"  # 正在结算出牌、摸牌或过牌
    GAME_OVER = "game_over"            # 有玩家出完手牌


class GameSession:
    """
    UNO 游戏会话

    新建时洗牌、发牌并翻开一张数字牌；读档时使用 restore() 跳过发牌

    同一时刻只有一个回合在进行: 驱动方在收到上一次调用的事件之前
    不得发起新的推进回合的调用
    """

    def __init__(
        self,
        players: Sequence[Player],
        event_bus: Optional[EventBus] = None,
        account_store: Optional[AccountStore] = None,
        config: Optional[GameConfig] = None,
        rng: Optional[random.Random] = None,
        deck: Optional[Deck] = None,
        deal: bool = True,
    ):
        """
        Args:
            players: 玩家 (构造后成员固定)
            event_bus: 事件总线
            account_store: 账户存储 (游戏结束时写入真人玩家战绩)
            config: 游戏配置
            rng: 随机数生成器 (洗牌与机器人决策)
            deck: 牌堆 (None 表示新牌组)
            deal: 是否发牌 (读档时为 False)
        """
        if not players:
            raise ValueError("A game session needs at least one player")

        self.config = config or GameConfig()
        if rng is None:
            rng = random.Random(self.config.seed)
        self._rng = rng
        self._players: Tuple[Player, ...] = tuple(players)
        self._deck = deck if deck is not None else Deck(rng=rng)
        self.events = event_bus or EventBus()
        self.account_store = account_store

        self._current_card: Optional[Card] = None
        self._current_color: Optional[Color] = None
        self._current_index = 0
        self._clockwise = True
        self._phase = Phase.AWAITING_PLAY
        self._winner: Optional[Player] = None
        self._drawn_this_turn = False

        # 存档文件 (首次保存时确定)
        self.save_path: Optional[Path] = None

        if deal:
            if len(self._players) < 2:
                raise ValueError("A new game needs at least two players")
            self._shuffle_and_deal()

    @classmethod
    def create(
        cls,
        username: str,
        num_bots: int = 1,
        config: Optional[GameConfig] = None,
        **kwargs,
    ) -> 'GameSession':
        """
        创建一名真人玩家对若干机器人的新对局

        Args:
            username: 真人玩家用户名
            num_bots: 机器人数量
            config: 游戏配置

        Returns:
            已发牌的 GameSession
        """
        config = config or GameConfig()
        players = [Player(username, is_bot=False)]
        players += [Player(f"{config.bot_prefix} {i + 1}", is_bot=True) for i in range(num_bots)]
        return cls(players, config=config, **kwargs)

    @classmethod
    def restore(
        cls,
        players: Sequence[Player],
        deck: Deck,
        current_card: Card,
        current_index: int = 0,
        clockwise: bool = True,
        current_color: Optional[Color] = None,
        **kwargs,
    ) -> 'GameSession':
        """
        从存档数据恢复会话 (不发牌)

        Args:
            players: 带手牌的玩家
            deck: 恢复的牌堆
            current_card: 当前顶牌
            current_index: 当前玩家索引
            clockwise: 方向
            current_color: 万能牌选定的颜色

        Returns:
            GameSession
        """
        session = cls(players, deck=deck, deal=False, **kwargs)
        if not 0 <= current_index < len(session._players):
            raise ValueError(
                f"Current index {current_index} out of range for {len(session._players)} players"
            )
        session._current_card = current_card
        session._current_index = current_index
        session._clockwise = clockwise
        session._current_color = current_color
        if session.is_game_over():
            session._phase = Phase.GAME_OVER
            session._winner = next(p for p in session._players if len(p) == 0)
        return session

    def _shuffle_and_deal(self):
        """洗牌、发牌并翻开起始牌"""
        self._deck.shuffle()
        for player in self._players:
            for _ in range(self.config.hand_size):
                player.draw_card(self._deck.draw())
            logger.debug(f"{player.username} has been dealt {len(player)} cards")

        # 起始牌必须是数字牌，翻出的功能牌压在弃牌堆下面
        card = self._deck.draw()
        while not RuleEngine.is_valid_starting_card(card):
            self._deck.add_to_discard_pile(card)
            card = self._deck.draw()
        self._deck.add_to_discard_pile(card)
        self._current_card = card
        self._current_index = 0
        logger.info(f"Starting card: {card}")

    # ------------------------------------------------------------------
    # 状态查询
    # ------------------------------------------------------------------

    @property
    def players(self) -> Tuple[Player, ...]:
        return self._players

    @property
    def deck(self) -> Deck:
        return self._deck

    @property
    def current_card(self) -> Card:
        return self._current_card

    @property
    def current_color(self) -> Optional[Color]:
        return self._current_color

    @property
    def effective_color(self) -> Color:
        return RuleEngine.effective_color(self._current_card, self._current_color)

    @property
    def current_player_index(self) -> int:
        return self._current_index

    @property
    def current_player(self) -> Player:
        return self._players[self._current_index]

    @property
    def direction_clockwise(self) -> bool:
        return self._clockwise

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def winner(self) -> Optional[Player]:
        return self._winner

    @property
    def drawn_this_turn(self) -> bool:
        """当前玩家本回合是否已摸过牌"""
        return self._drawn_this_turn

    @property
    def human_player(self) -> Optional[Player]:
        """第一位非机器人玩家"""
        return next((p for p in self._players if not p.is_bot), None)

    def total_cards(self) -> int:
        """牌堆与所有手牌的总张数 (恒为 108)"""
        return len(self._deck) + sum(len(p) for p in self._players)

    def is_game_over(self) -> bool:
        return any(len(p) == 0 for p in self._players)

    def is_valid_play(self, card: Card) -> bool:
        return RuleEngine.is_valid_play(card, self._current_card, self._current_color)

    def playable_cards(self, player: Player) -> List[Card]:
        return RuleEngine.playable_cards(player.hand, self._current_card, self._current_color)

    def set_current_color(self, color: Color):
        """驱动方在选色回调之外指定颜色"""
        if color == Color.WILD:
            raise ValueError("Cannot set the current color to WILD")
        self._current_color = Color(color)
        logger.info(f"Current color set to: {self._current_color.name}")

    # ------------------------------------------------------------------
    # 出牌
    # ------------------------------------------------------------------

    def _check_turn(self, player: Player, action: str) -> bool:
        if self._phase == Phase.GAME_OVER:
            logger.warning(f"{player.username} tried to {action} after the game ended")
            return False
        if self._phase == Phase.TURN_RESOLVING:
            logger.warning(f"{player.username} tried to {action} while a turn is resolving")
            return False
        if player is not self.current_player:
            logger.warning(
                f"{player.username} tried to {action} during {self.current_player.username}'s turn"
            )
            return False
        return True

    def play_card(self, card: Card, player: Player) -> bool:
        """
        打出一张牌

        Args:
            card: 要出的牌
            player: 出牌玩家 (必须是当前玩家)

        Returns:
            出牌成功为 True；非法出牌为 False 且状态不变
        """
        if not self._check_turn(player, "play"):
            return False
        if not player.has_card(card):
            logger.warning(f"{player.username} does not hold {card}")
            return False
        if not self.is_valid_play(card):
            logger.info(f"Invalid move attempted by {player.username}: {card}")
            return False

        self._phase = Phase.TURN_RESOLVING
        if not player.is_bot:
            player.increment_score(card_points(card))

        # 罚牌判断使用出牌前的声明状态
        initial_hand_size = len(player)
        uno_declared = player.has_declared_uno()
        self._execute_play(card, player)

        if initial_hand_size == 2 and not uno_declared:
            logger.info(f"{player.username} did not declare UNO.")
            self._apply_uno_penalty(player)

        self.events.emit(EventType.STATUS_UPDATED)
        self._advance_turn(player, card)
        return True

    def _execute_play(self, card: Card, player: Player):
        self._current_card = card
        self._deck.add_to_discard_pile(card)
        player.remove_card(card)
        player.set_uno_declared(False)
        if not card.is_wild:
            self._current_color = None
        logger.info(f"{player.username} plays {card}")

    def _apply_uno_penalty(self, player: Player):
        for _ in range(self.config.uno_penalty):
            player.draw_card(self._deck.draw())
        logger.info(f"{player.username} draws {self.config.uno_penalty} penalty cards")
        self.events.emit(EventType.PENALTY_APPLIED, player=player)

    def _resolve_color(self, player: Player, card: Card):
        """真人玩家由驱动方选色，机器人自动选色"""
        if player.is_bot:
            color = player.choose_color_automatically()
        else:
            color = self.events.request_color(player, card)
            if color is None:
                color = player.choose_color_automatically()
                logger.warning(f"No color chosen by {player.username}, defaulting to {color.name}")
        self._current_color = color
        logger.info(f"{player.username} changes the color to: {color.name}")

    def _advance_turn(self, player: Player, card: Optional[Card] = None):
        """
        推进回合并结算刚打出的牌的效果

        Args:
            player: 刚行动的玩家
            card: 刚打出的牌 (摸牌后跳过时为 None)
        """
        if self.is_game_over():
            self._end_game()
            return

        n = len(self._players)
        if card is not None:
            if card.is_wild:
                self._resolve_color(player, card)
            if card.rank == Rank.REVERSE:
                self._clockwise = not self._clockwise
                logger.info(f"{player.username} reversed the direction of play.")
                self.events.emit(EventType.DIRECTION_CHANGED, clockwise=self._clockwise)

        next_index = RuleEngine.next_index(self._current_index, n, self._clockwise)

        if card is not None:
            penalty = RuleEngine.draw_penalty(card)
            if penalty:
                victim = self._players[next_index]
                for _ in range(penalty):
                    victim.draw_card(self._deck.draw())
                logger.info(f"{player.username} made {victim.username} draw {penalty} cards.")
                self.events.emit(EventType.STATUS_UPDATED)
            if RuleEngine.skips_next_player(card, n):
                logger.info(f"{self._players[next_index].username} is skipped.")
                next_index = RuleEngine.next_index(next_index, n, self._clockwise)

        self._current_index = next_index
        self._drawn_this_turn = False
        self._phase = Phase.AWAITING_PLAY
        logger.info(f"It is now {self.current_player.username}'s turn.")
        self.events.emit(EventType.TURN_CHANGED, player=self.current_player)

    # ------------------------------------------------------------------
    # 摸牌
    # ------------------------------------------------------------------

    def draw_card_for_player(self, player: Player) -> Optional[Card]:
        """
        为当前玩家摸一张牌

        Returns:
            摸到的牌可出时返回该牌 (玩家可以出它或 pass_turn)；
            否则自动结束回合并返回 None
        """
        if not self._check_turn(player, "draw"):
            return None
        self._phase = Phase.TURN_RESOLVING
        card = self._deck.draw()
        player.draw_card(card)
        self._drawn_this_turn = True
        logger.info(f"{player.username} draws {card}")
        self.events.emit(EventType.STATUS_UPDATED)

        if self.is_valid_play(card):
            self._phase = Phase.AWAITING_PLAY
            return card
        self._advance_turn(player)
        return None

    def pass_turn(self, player: Player) -> bool:
        """
        摸到可出的牌后选择不出

        Returns:
            本回合尚未摸牌时为 False
        """
        if not self._check_turn(player, "pass"):
            return False
        if not self._drawn_this_turn:
            logger.info(f"{player.username} must draw before passing")
            return False
        self._phase = Phase.TURN_RESOLVING
        logger.info(f"{player.username} keeps the drawn card and passes")
        self._advance_turn(player)
        return True

    # ------------------------------------------------------------------
    # 机器人
    # ------------------------------------------------------------------

    def bot_decide_card_to_play(self, bot: Player) -> Optional[Card]:
        """
        机器人选牌

        可出的牌中有功能牌时在功能牌里随机选，否则在全部可出的牌里随机选

        Returns:
            选中的牌；没有可出的牌时为 None
        """
        playable = self.playable_cards(bot)
        if not playable:
            return None
        action_cards = [c for c in playable if c.is_action]
        return self._rng.choice(action_cards or playable)

    def play_bot_turn(self, bot: Player) -> Optional[Card]:
        """
        执行一次机器人回合

        不会递归进入下一回合，回合推进已在 play_card / draw_card_for_player 中完成；
        结束时发出 BOT_ACTION，由驱动方决定何时进行下一回合

        Returns:
            打出的牌；摸牌后无牌可出时为 None
        """
        if not self._check_turn(bot, "take a bot turn"):
            return None

        played: Optional[Card] = None
        card = self.bot_decide_card_to_play(bot)
        if card is None:
            card = self.draw_card_for_player(bot)
        if card is not None:
            if len(bot) == 2 and not bot.has_declared_uno():
                self.declare_uno(bot)
            if self.play_card(card, bot):
                played = card

        self.events.emit(EventType.BOT_ACTION, player=bot, card=played)
        return played

    # ------------------------------------------------------------------
    # UNO
    # ------------------------------------------------------------------

    def can_declare_uno(self, player: Player) -> bool:
        return RuleEngine.can_declare_uno(player.hand, self._current_card)

    def declare_uno(self, player: Player) -> bool:
        """
        声明 UNO

        Returns:
            声明是否成功 (失败时不改变状态)
        """
        if self._phase != Phase.GAME_OVER and self.can_declare_uno(player):
            player.set_uno_declared(True)
            logger.info(f"{player.username} declares UNO!")
            self.events.emit(EventType.UNO_DECLARED, player=player)
            return True
        logger.info(f"{player.username} cannot declare UNO now")
        self.events.emit(EventType.UNO_DECLARATION_FAILED, player=player)
        return False

    # ------------------------------------------------------------------
    # 结束
    # ------------------------------------------------------------------

    def _end_game(self):
        """结束对局 (只执行一次)"""
        if self._phase == Phase.GAME_OVER:
            return
        self._phase = Phase.GAME_OVER
        self._winner = next(p for p in self._players if len(p) == 0)
        logger.info(f"Game over, {self._winner.username} wins")
        self._finalize_statistics()
        self.events.emit(EventType.TURN_CHANGED, player=None)
        self.events.emit(EventType.GAME_OVER, player=self._winner)

    def _finalize_statistics(self):
        """把真人玩家的本局结果写入账户存储"""
        human = self.human_player
        if human is None:
            logger.debug("No human player, statistics not recorded")
            return

        won = len(human) == 0
        human.stats.games_played += 1
        human.stats.wins += 1 if won else 0
        human.stats.total_score += human.score

        if self.account_store is None:
            return
        try:
            record = self.account_store.record_game(human.username, won, human.score)
        except AccountStoreError as e:
            logger.error(f"Error updating statistics: {e}")
            return
        human.stats = record.stats
