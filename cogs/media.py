# cogs/media.py
import discord
from discord.ext import commands

from mediabot import MediaKind
from mediabot.billing import submit_paid_request

THEME = {
    "primary": discord.Color.blurple(),
    "warning": discord.Color.orange(),
    "error": discord.Color.red(),
    "success": discord.Color.green(),
}


class Media(commands.Cog):
    """Pedidos de música/video para el stream, pagados con tokens."""

    def __init__(self, bot):
        self.bot = bot
        self.media = bot.media
        self.ledger = bot.ledger
        self.config = bot.media.config

    def _who(self, ctx: commands.Context) -> str:
        return ctx.author.name

    async def _paid(self, ctx: commands.Context, url: str, kind: MediaKind, cost: int):
        label = "Música" if kind == MediaKind.DOWNLOADED else "Video"
        msg = await ctx.send(f"💿 **Procesando pedido de {label.lower()}...** ({cost} tokens)")
        outcome = await submit_paid_request(self.media, self.ledger, url, self._who(ctx), kind, cost)
        emoji = "✅" if outcome.success else "❌"
        await msg.edit(content=f"{emoji} {ctx.author.mention}: {outcome.message}")

    # ==========================================
    # 🎵 PEDIDOS
    # ==========================================
    @commands.hybrid_command(name="music", description="Pide una canción de YouTube (cuesta tokens).")
    async def music(self, ctx: commands.Context, url: str):
        """Descarga el audio y lo pone en la cola de VLC."""
        await self._paid(ctx, url, MediaKind.DOWNLOADED, self.config.music_cost)

    @commands.hybrid_command(name="video", description="Pide un video de YouTube para el overlay (cuesta tokens).")
    async def video(self, ctx: commands.Context, url: str):
        await self._paid(ctx, url, MediaKind.STREAMED, self.config.video_cost)

    # ==========================================
    # 🎮 CONTROLES (mods)
    # ==========================================
    @commands.hybrid_command(name="skip", description="Salta el medio actual.")
    @commands.has_permissions(manage_messages=True)
    async def skip(self, ctx: commands.Context):
        res = self.media.skip()
        await ctx.send(("⏭️ " if res.success else "🚫 ") + res.message)

    @commands.hybrid_command(name="pause", description="Pausa o reanuda.")
    @commands.has_permissions(manage_messages=True)
    async def pause(self, ctx: commands.Context):
        res = self.media.toggle_pause()
        await ctx.send(("⏯️ " if res.success else "🚫 ") + res.message)

    @commands.hybrid_command(name="volume", description="Volumen 0-100.")
    @commands.has_permissions(manage_messages=True)
    async def volume(self, ctx: commands.Context, nivel: int):
        res = self.media.set_volume(nivel)
        await ctx.send(("🔊 " if res.success else "🚫 ") + res.message)

    @commands.hybrid_command(name="remove", description="Quita un elemento de la cola (1 = siguiente).")
    @commands.has_permissions(manage_messages=True)
    async def remove(self, ctx: commands.Context, posicion: int):
        res = self.media.remove_from_queue(posicion - 1)
        await ctx.send(("🗑️ " if res.success else "🚫 ") + res.message)

    @commands.hybrid_command(name="move", description="Mueve un elemento de la cola.")
    @commands.has_permissions(manage_messages=True)
    async def move(self, ctx: commands.Context, desde: int, hasta: int):
        res = self.media.reorder_queue(desde - 1, hasta - 1)
        await ctx.send(("↕️ " if res.success else "🚫 ") + res.message)

    # ==========================================
    # 📜 VISTAS
    # ==========================================
    @commands.hybrid_command(name="np", description="Qué está sonando.")
    async def now_playing(self, ctx: commands.Context):
        st = self.media.get_status()
        paused = st["isPaused"]
        color = THEME["warning"] if paused else THEME["primary"]
        estado = "⏸️ Pausado" if paused else ("▶️ Reproduciendo" if st["type"] != "none" else "⏹️ Detenido")

        embed = discord.Embed(title=f"🎶 {st['title']}", url=st["url"] or None, description=f"**{estado}**", color=color)
        embed.add_field(name="🙋 Pedido por", value=st["requestedBy"], inline=True)
        embed.add_field(name="⏱️ Tiempo", value=f"`{st['position']} / {st['length']}`", inline=True)
        embed.add_field(name="🔊 Volumen", value=f"{st['volume']}%", inline=True)
        nxt = st["nextMedia"]
        embed.add_field(
            name="📜 Siguiente",
            value=f"{nxt['title']} ({nxt['requestedBy']})" if nxt else "—",
            inline=False,
        )
        embed.set_footer(text=f"En cola: {st['queueLength']}")
        await ctx.send(embed=embed)

    @commands.hybrid_command(name="queue", description="Muestra la cola.")
    async def queue(self, ctx: commands.Context):
        items = self.media.get_queue()["queue"]
        if not items:
            return await ctx.send("📭 La cola está vacía.")
        lines = [
            f"`{i}.` {'🎵' if m['type'] == MediaKind.DOWNLOADED.value else '📺'} **{m['title']}** "
            f"`{m['duration']}` — {m['requestedBy']}"
            for i, m in enumerate(items[:10], start=1)
        ]
        if len(items) > 10:
            lines.append(f"… y {len(items) - 10} más")
        embed = discord.Embed(title="📜 Cola", description="\n".join(lines), color=THEME["primary"])
        await ctx.send(embed=embed)

    # ==========================================
    # 💰 TOKENS
    # ==========================================
    @commands.hybrid_command(name="tokens", description="Mira tu saldo de tokens.")
    async def tokens(self, ctx: commands.Context):
        balance = await self.ledger.balance(self._who(ctx))
        await ctx.send(
            f"💰 {ctx.author.mention}: tienes **{balance}** tokens. "
            f"Música: {self.config.music_cost} • Video: {self.config.video_cost}"
        )

    @commands.command(name="givetokens")
    @commands.is_owner()
    async def give_tokens(self, ctx: commands.Context, miembro: discord.Member, cantidad: int):
        """Regala tokens (solo dueño)."""
        new_balance = await self.ledger.add(miembro.name, cantidad, f"Regalo de {ctx.author.name}")
        await ctx.send(f"🎁 {miembro.mention} recibió **{cantidad}** tokens. Saldo: **{new_balance}**.")


async def setup(bot):
    await bot.add_cog(Media(bot))
