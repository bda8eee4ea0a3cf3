import asyncio
import random
import traceback
from typing import Optional

import discord
from redbot.core import Config, commands, data_manager

from .decorators import is_cog_ready
from .helpers import (
    TimeHelper,
    LoggingHelper,
    DataHelper,
    CatalogHelper,
    PlantHelper,
    QuestHelper,
    EventHelper,
    TradeHelper,
    GameStateHelper,
    GardenHelper,
)
from .models import ActionCheck, GameState


class Grower(commands.Cog):
    """Grow Room - a shared idle grow-op. Plant strains, tend them, sell the buds."""

    NUGS_EMOJI = "🪙"
    BUDS_EMOJI = "🌿"

    REASON_TEXT = {
        "insufficient funds": "Not enough nugs.",
        "cooling down": "Still cooling down.",
        "quality maxed": "Quality is already at its peak.",
        "harvest ready": "The plant is ready for harvest.",
        "unknown upgrade": "No such upgrade exists.",
        "max level": "That upgrade is already at max level.",
        "max slots": "The grow room is already at maximum size.",
    }

    def __init__(self, bot: commands.Bot):
        self._initialized = False

        self.bot = bot
        self.config = Config.get_conf(self, identifier=480213377042001)
        self.config.register_global(save_blob=None, log_channel_id=None)

        self.cog_data_path = data_manager.bundled_data_path(self)
        self.logger = LoggingHelper(bot)
        self.data_loader = DataHelper(self.cog_data_path, self.logger)
        self.data_loader.load_all_data()

        self.catalog = CatalogHelper.from_data_helper(self.data_loader)
        self.policy = self.catalog.policy
        self.quest_helper = QuestHelper(self.catalog.quests)
        self.plant_helper = PlantHelper(self.catalog, self.logger)
        self.trade_helper = TradeHelper(self.policy, self.logger)
        self.event_helper = EventHelper(self.catalog.event_presets, self.policy, self.logger)
        self.garden_helper = GardenHelper(self.catalog, self.plant_helper, self.trade_helper, self.quest_helper,
                                          self.event_helper, self.logger)
        self.game_state_helper = GameStateHelper(self.config, self.logger, self.policy, self.quest_helper)

        self.rng = random.Random()
        self.growth_task = self.bot.loop.create_task(self.startup_and_growth_loop())

    def cog_unload(self):
        """Cog cleanup method."""

        if self.growth_task:
            self.growth_task.cancel()

        if self._initialized:
            self.game_state_helper.schedule_commit(self.bot.loop)

        self.logger.log("Grow Room systems are now offline.", "INFO")

    @property
    def state(self) -> GameState:
        return self.game_state_helper.get_state()

    def _apply(self, new_state: GameState):
        self.game_state_helper.set_state(new_state)

    async def startup_and_growth_loop(self):
        """The main background task: advances growth, expires and fires events, autosaves."""

        await self.bot.wait_until_ready()
        self.logger.log_channel_id = await self.config.log_channel_id()
        await self.logger.flush_init_log_queue()

        await self.game_state_helper.load_game_state()
        self._initialized = True

        await self.logger.log_to_discord("Growth Loop: Startup complete. Entering main simulation cycle.", "INFO")

        tick_seconds = self.policy.growth_tick_ms / 1000
        last_tick = TimeHelper.monotonic_ms()
        loop_counter = 0

        while not self.bot.is_closed():
            try:
                tick_start = TimeHelper.monotonic_ms()
                delta_seconds = (tick_start - last_tick) / 1000
                last_tick = tick_start
                now = TimeHelper.now_ms()

                state = self.garden_helper.tick_growth(self.state, delta_seconds)
                state = self.garden_helper.tick_event(state, now)

                if self.event_helper.roll_trigger(self.rng):
                    state = self.garden_helper.trigger_event(state, now, self.rng)
                    if state.event is not None and state.event is not self.state.event:
                        self.logger.log(f"Random Event: '{state.event.name}' started.", "INFO")

                self._apply(state)
                await self.game_state_helper.autosave_if_due(now)
            except Exception as e:
                self.logger.log(
                    f"Growth Loop: CRITICAL Anomaly in cycle {loop_counter}: {e}\n{traceback.format_exc()}",
                    "CRITICAL")

            loop_counter += 1
            await asyncio.sleep(tick_seconds)

    # --- Formatting ---

    def _reason(self, code: Optional[str]) -> str:
        return self.REASON_TEXT.get(code, code or "Unknown reason.")

    def _slot_line(self, slot_index: int) -> str:
        plant = self.state.slots[slot_index]
        prefix = f"**{slot_index + 1}:**"

        if plant is None:
            return f"{prefix} 🟫 Empty"

        strain_def = self.catalog.get_strain(plant.strain_id)
        phase_def = self.catalog.get_phase(plant.phase_index)
        strain_name = strain_def.name if strain_def else plant.strain_id
        phase_name = phase_def.name if phase_def else "?"
        progress = self.plant_helper.progress(plant, self.state.event)

        if self.plant_helper.is_harvest_ready(plant, self.state.event):
            return f"{prefix} ✨ {strain_name} - ready to harvest! (quality {plant.modifiers.quality_multiplier:.0%})"

        return (f"{prefix} 🌱 {strain_name} - {phase_name} {plant.phase_index + 1}/{self.catalog.phase_count} "
                f"({progress:.0f}%), quality {plant.modifiers.quality_multiplier:.0%}, {plant.modifiers.soil_type}")

    async def _send_declined(self, ctx: commands.Context, title: str, description: str):
        embed = discord.Embed(title=f"❌ {title}", description=description, color=discord.Color.red())
        embed.set_footer(text="Grow Room")
        await ctx.send(embed=embed)

    async def _check_slot(self, ctx: commands.Context, slot_number: int) -> Optional[int]:
        """Validates a 1-based slot number from a command and returns the 0-based index."""

        if not (1 <= slot_number <= len(self.state.slots)):
            await self._send_declined(ctx, "Invalid Slot",
                                      f"Slot {slot_number} does not exist. You have {len(self.state.slots)} slots.")
            return None
        return slot_number - 1

    # --- Garden commands ---

    @commands.command(name="growroom")
    @is_cog_ready()
    async def growroom_command(self, ctx: commands.Context):
        """Show the grow room: currencies, slots, the active event and lifetime stats."""

        state = self.state
        embed = discord.Embed(title="🏠 Grow Room", color=discord.Color.green())
        embed.add_field(
            name="Wallet",
            value=f"{self.NUGS_EMOJI} **{state.nugs:,}** nugs\n{self.BUDS_EMOJI} **{state.buds:,}** buds",
            inline=True)

        if state.event:
            now = TimeHelper.now_ms()
            embed.add_field(
                name=f"🎪 {state.event.name}",
                value=f"{state.event.description}\nEnds in {TimeHelper.seconds_until(state.event.ends_at, now)}s",
                inline=True)

        embed.add_field(name="Slots", value="\n".join(self._slot_line(i) for i in range(len(state.slots))),
                        inline=False)

        stats = state.stats
        embed.add_field(
            name="📈 Lifetime",
            value=f"Harvests: {stats.total_harvests} (best {stats.best_harvest} buds)\n"
                  f"Buds harvested: {stats.total_buds_harvested:,} | sold: {stats.total_buds_sold:,}\n"
                  f"Nugs earned: {stats.total_nugs_earned:,} | trades: {stats.total_trades}",
            inline=False)

        footer = "Grow Room"
        if self.game_state_helper.last_saved_at:
            footer += f" - last saved {TimeHelper.format_est(self.game_state_helper.last_saved_at)}"
        embed.set_footer(text=footer)
        await ctx.send(embed=embed)

    @commands.command(name="strains")
    @is_cog_ready()
    async def strains_command(self, ctx: commands.Context):
        """List the available strains and soils."""

        strain_lines = [
            f"`{s.id}` **{s.name}** - {s.seed_cost} {self.NUGS_EMOJI}, grow time x{s.growth_multiplier:.2f}, "
            f"yield {s.base_yield}"
            for s in self.catalog.get_all_strains()
        ]
        soil_lines = [
            f"`{s.id}` **{s.name}** - {s.cost} {self.NUGS_EMOJI}, grow time x{s.growth_multiplier:.2f}"
            for s in self.catalog.get_all_soils()
        ]

        embed = discord.Embed(title="🌱 Seed Catalog", color=discord.Color.blue())
        embed.add_field(name="Strains", value="\n".join(strain_lines) or "None.", inline=False)
        embed.add_field(name="Soils", value="\n".join(soil_lines) or "None.", inline=False)
        embed.set_footer(text=f"Syntax: {ctx.prefix}plant <slot> <strain> [soil]")
        await ctx.send(embed=embed)

    @commands.command(name="plant")
    @is_cog_ready()
    async def plant_command(self, ctx: commands.Context, slot_number: int, strain_id: str, soil_type: str = "basic"):
        """Plant a strain into an empty slot."""

        slot_index = await self._check_slot(ctx, slot_number)
        if slot_index is None:
            return

        cost = self.garden_helper.seed_cost(strain_id, soil_type)
        if cost is None:
            await self._send_declined(ctx, "Unknown Seed",
                                      f"`{strain_id}` with `{soil_type}` soil is not in the catalog. "
                                      f"See `{ctx.prefix}strains`.")
            return

        if self.state.slots[slot_index] is not None:
            await self._send_declined(ctx, "Slot Occupied", f"Slot {slot_number} already has a plant in it.")
            return

        new_state, planted = self.garden_helper.plant_seed(self.state, slot_index, strain_id, soil_type,
                                                           TimeHelper.now_ms())
        if not planted:
            await self._send_declined(ctx, "Cannot Plant",
                                      f"Planting costs {cost} {self.NUGS_EMOJI}; you have {self.state.nugs}.")
            return

        self._apply(new_state)
        embed = discord.Embed(
            title="🌱 Seed Planted",
            description=f"{self.catalog.get_strain(strain_id).name} is now growing in slot {slot_number} "
                        f"({soil_type}). Paid {cost} {self.NUGS_EMOJI}.",
            color=discord.Color.green())
        embed.set_footer(text="Grow Room")
        await ctx.send(embed=embed)

    async def _care_command(self, ctx: commands.Context, slot_number: int, action: str):
        slot_index = await self._check_slot(ctx, slot_number)
        if slot_index is None:
            return

        if self.state.slots[slot_index] is None:
            await self._send_declined(ctx, "Empty Slot", f"There is nothing growing in slot {slot_number}.")
            return

        now = TimeHelper.now_ms()
        if action == "water":
            new_state, check = self.garden_helper.water(self.state, slot_index, now)
        else:
            new_state, check = self.garden_helper.fertilize(self.state, slot_index, now)

        if not check.can_perform:
            await self._send_declined(ctx, f"Cannot {action.capitalize()}", self._describe_check(check))
            return

        self._apply(new_state)
        plant = new_state.slots[slot_index]
        verb = "Watered" if action == "water" else "Fertilized"
        embed = discord.Embed(
            title=f"💧 {verb}" if action == "water" else f"🧪 {verb}",
            description=f"{verb} slot {slot_number} for {check.cost} {self.NUGS_EMOJI}. "
                        f"Quality is now {plant.modifiers.quality_multiplier:.0%}.",
            color=discord.Color.green())
        embed.set_footer(text="Grow Room")
        await ctx.send(embed=embed)

    def _describe_check(self, check: ActionCheck) -> str:
        description = self._reason(check.reason)
        if check.reason == "cooling down":
            description += f" Try again in {TimeHelper.seconds_until(check.cooldown_remaining_ms, 0)}s."
        elif check.reason == "insufficient funds":
            description += f" It costs {check.cost} {self.NUGS_EMOJI}."
        return description

    @commands.command(name="water")
    @is_cog_ready()
    async def water_command(self, ctx: commands.Context, slot_number: int):
        """Water the plant in a slot."""
        await self._care_command(ctx, slot_number, "water")

    @commands.command(name="fertilize")
    @is_cog_ready()
    async def fertilize_command(self, ctx: commands.Context, slot_number: int):
        """Fertilize the plant in a slot to raise its quality."""
        await self._care_command(ctx, slot_number, "fertilize")

    @commands.command(name="harvest")
    @is_cog_ready()
    async def harvest_command(self, ctx: commands.Context, slot_number: int):
        """Harvest a fully grown plant."""

        slot_index = await self._check_slot(ctx, slot_number)
        if slot_index is None:
            return

        plant = self.state.slots[slot_index]
        if plant is None or not self.plant_helper.is_harvest_ready(plant, self.state.event):
            await self._send_declined(ctx, "Not Ready", f"Slot {slot_number} has nothing ready to harvest.")
            return

        new_state, result = self.garden_helper.harvest(self.state, slot_index)
        if result is None:
            await self._send_declined(ctx, "Harvest Failed", "The harvest could not be completed.")
            return

        self._apply(new_state)
        embed = discord.Embed(
            title="✨ Harvest Complete",
            description=f"Slot {slot_number} yielded **{result.buds_yielded}** {self.BUDS_EMOJI} buds "
                        f"at {result.quality_multiplier:.0%} quality.\nYou now hold {new_state.buds:,} buds.",
            color=discord.Color.gold())
        embed.set_footer(text="Grow Room")
        await ctx.send(embed=embed)

    @commands.command(name="uproot")
    @is_cog_ready()
    async def uproot_command(self, ctx: commands.Context, slot_number: int):
        """Remove a plant from its slot without harvesting it."""

        slot_index = await self._check_slot(ctx, slot_number)
        if slot_index is None:
            return

        if self.state.slots[slot_index] is None:
            await self._send_declined(ctx, "Empty Slot", f"There is nothing growing in slot {slot_number}.")
            return

        self._apply(self.garden_helper.remove_plant(self.state, slot_index))
        await ctx.send(embed=discord.Embed(title="🪓 Uprooted", description=f"Slot {slot_number} is empty again.",
                                           color=discord.Color.dark_grey()))

    # --- Trade commands ---

    @commands.command(name="offers")
    @is_cog_ready()
    async def offers_command(self, ctx: commands.Context):
        """Show the current buyer offers."""

        state = self.state
        now = TimeHelper.now_ms()
        embed = discord.Embed(title="🤝 Buyer Offers", color=discord.Color.blue())

        if not state.trade.offers:
            embed.description = "No offers on the board."
        for number, offer in enumerate(state.trade.offers, start=1):
            revenue = int(offer.quantity * offer.price_per_bud)
            sellable = "" if state.buds >= offer.quantity else " (not enough buds)"
            embed.add_field(
                name=f"#{number}",
                value=f"{offer.quantity} buds @ {offer.price_per_bud} = **{revenue}** {self.NUGS_EMOJI}{sellable}",
                inline=False)

        wait = TimeHelper.seconds_until(state.trade.next_refresh_at, now)
        embed.set_footer(text="New offers available now" if wait == 0 else f"New offers in {wait}s")
        await ctx.send(embed=embed)

    @commands.command(name="refreshoffers")
    @is_cog_ready()
    async def refreshoffers_command(self, ctx: commands.Context):
        """Ask for a new batch of buyer offers."""

        now = TimeHelper.now_ms()
        new_state, refreshed = self.garden_helper.generate_offers(self.state, now, self.rng)
        if not refreshed:
            wait = TimeHelper.seconds_until(self.state.trade.next_refresh_at, now)
            await self._send_declined(ctx, "Buyers Busy", f"New buyers arrive in {wait}s.")
            return

        self._apply(new_state)
        await self.offers_command(ctx)

    async def _resolve_offer_number(self, ctx: commands.Context, offer_number: int) -> Optional[str]:
        offers = self.state.trade.offers
        if not (1 <= offer_number <= len(offers)):
            await self._send_declined(ctx, "No Such Offer", f"Pick an offer between 1 and {len(offers)}.")
            return None
        return offers[offer_number - 1].id

    @commands.command(name="sell")
    @is_cog_ready()
    async def sell_command(self, ctx: commands.Context, offer_number: int):
        """Accept a buyer offer."""

        offer_id = await self._resolve_offer_number(ctx, offer_number)
        if offer_id is None:
            return

        offer = self.trade_helper.find_offer(self.state, offer_id)
        new_state, accepted = self.garden_helper.accept_offer(self.state, offer_id)
        if not accepted:
            await self._send_declined(ctx, "Not Enough Buds",
                                      f"The buyer wants {offer.quantity} buds; you have {self.state.buds}.")
            return

        revenue = new_state.nugs - self.state.nugs
        self._apply(new_state)
        embed = discord.Embed(
            title="💰 Sold",
            description=f"Sold {offer.quantity} buds for **{revenue}** {self.NUGS_EMOJI}.",
            color=discord.Color.green())
        embed.set_footer(text="Grow Room")
        await ctx.send(embed=embed)

    @commands.command(name="haggle")
    @is_cog_ready()
    async def haggle_command(self, ctx: commands.Context, offer_number: int):
        """Push a buyer for a better price. They may walk away for good."""

        offer_id = await self._resolve_offer_number(ctx, offer_number)
        if offer_id is None:
            return

        new_state, succeeded = self.garden_helper.haggle_offer(self.state, offer_id, self.rng)
        self._apply(new_state)

        if succeeded:
            offer = self.trade_helper.find_offer(new_state, offer_id)
            embed = discord.Embed(title="📈 Haggle Succeeded",
                                  description=f"The buyer now pays **{offer.price_per_bud}** per bud.",
                                  color=discord.Color.green())
        else:
            embed = discord.Embed(title="🚪 The Buyer Walked Away",
                                  description=f"Offer #{offer_number} is gone and will not come back.",
                                  color=discord.Color.red())
        embed.set_footer(text="Grow Room")
        await ctx.send(embed=embed)

    # --- Quests & upgrades ---

    @commands.command(name="quests")
    @is_cog_ready()
    async def quests_command(self, ctx: commands.Context):
        """Show quest progress."""

        lines = []
        for quest in self.state.quests:
            rewards = []
            if quest.reward.nugs:
                rewards.append(f"{quest.reward.nugs} {self.NUGS_EMOJI}")
            if quest.reward.buds:
                rewards.append(f"{quest.reward.buds} {self.BUDS_EMOJI}")

            if quest.claimed:
                status = "✅ claimed"
            elif quest.progress >= quest.goal:
                status = f"🎁 claim with `{ctx.prefix}claim {quest.id}`"
            else:
                status = f"{quest.progress}/{quest.goal}"

            lines.append(f"`{quest.id}` {quest.description} - {status} ({', '.join(rewards) or 'no reward'})")

        embed = discord.Embed(title="📜 Quests", description="\n".join(lines) or "No quests.",
                              color=discord.Color.purple())
        await ctx.send(embed=embed)

    @commands.command(name="claim")
    @is_cog_ready()
    async def claim_command(self, ctx: commands.Context, quest_id: str):
        """Claim a completed quest's reward."""

        new_state, claimed = self.garden_helper.claim_quest(self.state, quest_id)
        if not claimed:
            await self._send_declined(ctx, "Cannot Claim",
                                      f"Quest `{quest_id}` does not exist, is unfinished or was already claimed.")
            return

        self._apply(new_state)
        await ctx.send(embed=discord.Embed(
            title="🎁 Reward Claimed",
            description=f"Wallet: {new_state.nugs:,} {self.NUGS_EMOJI} | {new_state.buds:,} {self.BUDS_EMOJI}",
            color=discord.Color.gold()))

    @commands.command(name="upgrades")
    @is_cog_ready()
    async def upgrades_command(self, ctx: commands.Context):
        """List upgrades and the price of another slot."""

        lines = []
        for upgrade_def in self.catalog.get_all_upgrades():
            level = self.state.upgrades.get(upgrade_def.id, 0)
            cost = self.catalog.upgrade_cost(upgrade_def.id, level)
            price = f"{cost} {self.NUGS_EMOJI}" if cost is not None else "maxed"
            lines.append(f"`{upgrade_def.id}` **{upgrade_def.name}** (lvl {level}/{upgrade_def.max_level}) - "
                         f"{price}\n{upgrade_def.description}")

        slot_count = len(self.state.slots)
        if slot_count < self.policy.max_slots:
            lines.append(f"**Extra slot** ({slot_count}/{self.policy.max_slots}) - "
                         f"{self.catalog.slot_cost(slot_count)} {self.NUGS_EMOJI} via `{ctx.prefix}buyslot`")

        await ctx.send(embed=discord.Embed(title="🔧 Upgrades", description="\n\n".join(lines) or "None.",
                                           color=discord.Color.blue()))

    @commands.command(name="upgrade")
    @is_cog_ready()
    async def upgrade_command(self, ctx: commands.Context, upgrade_id: str):
        """Buy the next level of an upgrade."""

        new_state, reason = self.garden_helper.buy_upgrade(self.state, upgrade_id)
        if reason is not None:
            await self._send_declined(ctx, "Upgrade Failed", self._reason(reason))
            return

        self._apply(new_state)
        await ctx.send(embed=discord.Embed(
            title="🔧 Upgrade Purchased",
            description=f"`{upgrade_id}` is now level {new_state.upgrades[upgrade_id]}.",
            color=discord.Color.green()))

    @commands.command(name="buyslot")
    @is_cog_ready()
    async def buyslot_command(self, ctx: commands.Context):
        """Expand the grow room by one slot."""

        new_state, reason = self.garden_helper.buy_slot(self.state)
        if reason is not None:
            await self._send_declined(ctx, "Expansion Failed", self._reason(reason))
            return

        self._apply(new_state)
        await ctx.send(embed=discord.Embed(title="🏗️ New Slot",
                                           description=f"The grow room now has {len(new_state.slots)} slots.",
                                           color=discord.Color.green()))

    @commands.command(name="growsave")
    @is_cog_ready()
    async def growsave_command(self, ctx: commands.Context):
        """Save the grow room right now."""

        await self.game_state_helper.commit_to_disk()
        await ctx.send(embed=discord.Embed(title="💾 Saved", color=discord.Color.green()))

    # --- Admin ---

    @commands.group(name="growadmin")
    @is_cog_ready()
    @commands.is_owner()
    async def cmd_admin_group(self, ctx: commands.Context):
        """Base command for owner-only Grow Room utilities."""
        pass

    @cmd_admin_group.command(name="reset")
    async def admin_reset_command(self, ctx: commands.Context):
        """Wipes the save and starts a fresh grow room."""

        await self.game_state_helper.reset_game()
        await ctx.send(embed=discord.Embed(title="⚙️ Grow Room Reset",
                                           description="Saved data cleared. A fresh game has started.",
                                           color=discord.Color.orange()))

    @cmd_admin_group.command(name="event")
    async def admin_event_command(self, ctx: commands.Context):
        """Fires a random event immediately."""

        new_state = self.garden_helper.trigger_event(self.state, TimeHelper.now_ms(), self.rng)
        if new_state.event is None:
            await self._send_declined(ctx, "No Event", "Random events are disabled or no presets are loaded.")
            return

        self._apply(new_state)
        await ctx.send(embed=discord.Embed(title=f"🎪 {new_state.event.name}",
                                           description=new_state.event.description,
                                           color=discord.Color.orange()))

    @cmd_admin_group.command(name="events")
    async def admin_events_command(self, ctx: commands.Context, enabled: bool):
        """Turns random events on or off."""

        self._apply(self.garden_helper.set_random_events(self.state, enabled))
        await ctx.send(f"Random events are now {'enabled' if enabled else 'disabled'}.")

    @cmd_admin_group.command(name="addnugs")
    async def admin_addnugs_command(self, ctx: commands.Context, amount: int):
        """Grants nugs."""

        if amount <= 0:
            await self._send_declined(ctx, "Invalid Input", "Amount must be a positive integer.")
            return

        self._apply(self.garden_helper.add_nugs(self.state, amount))
        await ctx.send(f"Nugs balance is now {self.state.nugs:,}.")

    @cmd_admin_group.command(name="addbuds")
    async def admin_addbuds_command(self, ctx: commands.Context, amount: int):
        """Grants (or with a negative amount, removes) buds."""

        self._apply(self.garden_helper.add_buds(self.state, amount))
        await ctx.send(f"Buds balance is now {self.state.buds:,}.")

    @cmd_admin_group.command(name="logchannel")
    async def admin_logchannel_command(self, ctx: commands.Context, channel: Optional[discord.TextChannel] = None):
        """Sets or clears the channel that receives Grow Room logs."""

        channel_id = channel.id if channel else None
        await self.config.log_channel_id.set(channel_id)
        self.logger.log_channel_id = channel_id
        await ctx.send(f"Log channel set to {channel.mention}." if channel else "Log channel cleared.")
