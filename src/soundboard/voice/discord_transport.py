"""Discord voice transport built on discord.py."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import Iterable

import discord
from discord import app_commands

from soundboard.schemas.messages import RoomInfo
from soundboard.voice.transport import TransportListener

logger = logging.getLogger(__name__)


class DiscordPlayback:
    """One clip playing through a guild's voice client."""

    def __init__(self, voice_client: discord.VoiceClient, source: discord.PCMVolumeTransformer) -> None:
        self._voice_client = voice_client
        self._source = source
        self._stopped = False

    def set_volume(self, volume: float) -> None:
        self._source.volume = volume

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        if self._voice_client.source is self._source:
            self._voice_client.stop()


class _SoundboardClient(discord.Client):
    def __init__(self, transport: "DiscordVoiceTransport") -> None:
        intents = discord.Intents.none()
        intents.guilds = True
        intents.voice_states = True
        super().__init__(intents=intents)
        self.transport = transport
        self.tree = app_commands.CommandTree(self)

        @self.tree.command(name="join", description="Join your current voice channel")
        async def join(interaction: discord.Interaction) -> None:
            await transport.handle_join(interaction)

        @self.tree.command(name="leave", description="Leave the current voice channel")
        async def leave(interaction: discord.Interaction) -> None:
            await transport.handle_leave(interaction)

    async def on_ready(self) -> None:
        logger.info("Logged in to Discord", extra={"user": str(self.user)})
        await self.transport.handle_ready()

    async def on_voice_state_update(
        self, member: discord.Member, before: discord.VoiceState, after: discord.VoiceState
    ) -> None:
        if self.user is None or member.id != self.user.id:
            return
        self.transport.handle_own_voice_state(member.guild, after)


class DiscordVoiceTransport:
    """Connect the soundboard to Discord guild voice channels.

    Guilds are rooms. Slash commands ``/join`` and ``/leave`` attach the bot to
    the invoking member's voice channel. Listener callbacks always run on the
    event loop thread; audio completion is marshalled back from the player
    thread.
    """

    def __init__(
        self,
        *,
        token: str,
        room_ids: Iterable[str] = (),
        discover_rooms: bool = False,
        connect_timeout: float = 10.0,
    ) -> None:
        self._token = token
        self._room_ids = list(room_ids)
        self._discover_rooms = discover_rooms
        self._connect_timeout = connect_timeout
        self._listener: TransportListener | None = None
        self._client = _SoundboardClient(self)
        self._runner: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def client(self) -> discord.Client:
        return self._client

    def set_listener(self, listener: TransportListener) -> None:
        self._listener = listener

    async def start(self) -> None:
        if self._runner is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._runner = asyncio.create_task(self._run(), name="discord-client")

    async def _run(self) -> None:
        try:
            await self._client.start(self._token)
        except discord.LoginFailure:
            logger.error("Discord rejected the bot token")
            raise

    async def stop(self) -> None:
        if self._runner is None:
            return
        await self._client.close()
        self._runner.cancel()
        with contextlib.suppress(asyncio.CancelledError, discord.DiscordException):
            await self._runner
        self._runner = None

    # ------------------------------------------------------------------
    # Room queries
    # ------------------------------------------------------------------
    def _guild(self, room_id: str) -> discord.Guild | None:
        try:
            return self._client.get_guild(int(room_id))
        except (TypeError, ValueError):
            return None

    def connection_for(self, room_id: str) -> discord.VoiceClient | None:
        guild = self._guild(room_id)
        if guild is None:
            return None
        voice_client = guild.voice_client
        if isinstance(voice_client, discord.VoiceClient) and voice_client.is_connected():
            return voice_client
        return None

    def describe_room(self, room_id: str) -> RoomInfo:
        guild = self._guild(room_id)
        if guild is None:
            return RoomInfo(id=room_id, name=room_id)
        icon = guild.icon.key if guild.icon is not None else None
        return RoomInfo(id=room_id, name=guild.name or room_id, icon=icon)

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------
    def play(
        self, handle: discord.VoiceClient, path: Path, volume: float, *, room_id: str
    ) -> DiscordPlayback:
        source = discord.PCMVolumeTransformer(discord.FFmpegPCMAudio(str(path)), volume=volume)
        if handle.is_playing() or handle.is_paused():
            handle.stop()
        playback = DiscordPlayback(handle, source)
        loop = self._loop or asyncio.get_running_loop()

        def after(error: Exception | None) -> None:
            loop.call_soon_threadsafe(self._finished, room_id, playback, error)

        handle.play(source, after=after)
        return playback

    def _finished(self, room_id: str, playback: DiscordPlayback, error: Exception | None) -> None:
        if self._listener is None:
            return
        if error is not None:
            self._listener.on_error(room_id, error)
        self._listener.on_idle(room_id, playback)

    # ------------------------------------------------------------------
    # Gateway events
    # ------------------------------------------------------------------
    async def handle_ready(self) -> None:
        if self._discover_rooms:
            discovered = [str(guild.id) for guild in self._client.guilds]
            if discovered:
                self._room_ids = discovered
                if self._listener is not None:
                    self._listener.on_rooms_discovered(discovered)
            else:
                logger.warning("No guilds found to register commands for")
        await self._sync_commands()

    async def _sync_commands(self) -> None:
        tree = self._client.tree
        for room_id in self._room_ids:
            guild = discord.Object(id=int(room_id))
            tree.copy_global_to(guild=guild)
            try:
                await tree.sync(guild=guild)
            except discord.HTTPException:
                logger.exception("Failed to register slash commands", extra={"room_id": room_id})
                continue
            logger.info("Slash commands registered", extra={"room_id": room_id})

    def handle_own_voice_state(self, guild: discord.Guild, after: discord.VoiceState) -> None:
        if self._listener is None:
            return
        room_id = str(guild.id)
        if not self._listener.allows_room(room_id):
            return
        if after.channel is None:
            self._listener.on_connection_changed(room_id, False, None)
        else:
            self._listener.on_connection_changed(room_id, True, after.channel.name)

    # ------------------------------------------------------------------
    # Slash commands
    # ------------------------------------------------------------------
    def _allowed(self, interaction: discord.Interaction) -> bool:
        if interaction.guild is None or self._listener is None:
            return False
        return self._listener.allows_room(str(interaction.guild.id))

    async def handle_join(self, interaction: discord.Interaction) -> None:
        if not self._allowed(interaction):
            await interaction.response.send_message(
                "This bot is not configured for this server.", ephemeral=True
            )
            return
        member = interaction.user
        voice = member.voice if isinstance(member, discord.Member) else None
        if voice is None or voice.channel is None:
            await interaction.response.send_message(
                "You need to be in a voice channel before using /join.", ephemeral=True
            )
            return
        channel = voice.channel
        guild = interaction.guild
        existing = guild.voice_client if guild is not None else None
        if isinstance(existing, discord.VoiceClient) and existing.is_connected():
            if existing.channel is not None and existing.channel.id == channel.id:
                await interaction.response.send_message(
                    "I am already in your voice channel.", ephemeral=True
                )
                return
            await existing.disconnect(force=True)

        await interaction.response.defer(ephemeral=True, thinking=True)
        try:
            await channel.connect(timeout=self._connect_timeout, self_deaf=True)
        except (asyncio.TimeoutError, discord.DiscordException):
            logger.exception("Failed to join voice channel", extra={"room_id": str(channel.guild.id)})
            await interaction.followup.send(
                "Could not join the voice channel. Check my permissions and try again.",
                ephemeral=True,
            )
            return
        await interaction.followup.send(f"Joined {channel.name}.", ephemeral=True)
        if self._listener is not None:
            self._listener.on_connection_changed(str(channel.guild.id), True, channel.name)

    async def handle_leave(self, interaction: discord.Interaction) -> None:
        if not self._allowed(interaction):
            await interaction.response.send_message(
                "This bot is not configured for this server.", ephemeral=True
            )
            return
        guild = interaction.guild
        room_id = str(guild.id)
        voice_client = self.connection_for(room_id)
        if voice_client is None:
            await interaction.response.send_message("I am not in a voice channel.", ephemeral=True)
            return
        await voice_client.disconnect(force=True)
        await interaction.response.send_message("Left the voice channel.", ephemeral=True)
        if self._listener is not None:
            self._listener.on_connection_changed(room_id, False, None)
