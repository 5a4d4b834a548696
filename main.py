import os
import asyncio
import traceback
import logging

import discord
from discord.ext import commands

from mediabot import MediaConfig, MediaOrchestrator, TokenLedger
from mediabot.api import start_api

# =========================
#  Logging
# =========================
logging.basicConfig(level=logging.INFO)
log = logging.getLogger("mediabot")
discord_log = logging.getLogger("discord")
discord_log.setLevel(logging.INFO)

# =========================
#  Config (.env)
# =========================
CONFIG = MediaConfig.from_env()
TOKEN = os.getenv("DISCORD_TOKEN")
DEV_GUILD_ID = int(os.getenv("DEV_GUILD_ID", "0"))

# =========================
#  Intents & Bot
# =========================
intents = discord.Intents.default()
intents.message_content = True
bot = commands.Bot(command_prefix=">", intents=intents, help_command=None)

EXTENSIONS = ["cogs.media"]


async def load_extensions():
    for mod in EXTENSIONS:
        try:
            await bot.load_extension(mod)
            log.info("✅  Cargado: %s", mod)
        except Exception:
            log.error("❌  Error al cargar %s:", mod)
            traceback.print_exc()


# =========================
#  setup_hook: orquestador, API, cogs, slash
# =========================
@bot.event
async def setup_hook():
    bot.ledger = TokenLedger(CONFIG.ledger_db)
    await bot.ledger.init()

    bot.media = MediaOrchestrator(CONFIG)
    await bot.media.start()
    bot.api_runner = await start_api(bot.media, CONFIG.api_port)

    await load_extensions()

    try:
        if DEV_GUILD_ID:
            guild = discord.Object(id=DEV_GUILD_ID)
            bot.tree.copy_global_to(guild=guild)
            synced = await bot.tree.sync(guild=guild)
            log.info("[SYNC] Guild %s: %d slash commands registrados.", DEV_GUILD_ID, len(synced))
        else:
            synced = await bot.tree.sync()
            log.info("[SYNC] Global: %d slash commands registrados.", len(synced))
    except Exception as e:
        log.error("[SYNC][ERROR] %s", e)


@bot.event
async def on_ready():
    log.info("✅ Media bot en línea como %s (%s)", bot.user, bot.user.id)


@bot.hybrid_command(name="help", description="Lista de comandos del bot de medios")
async def custom_help(ctx: commands.Context):
    """Guía rápida de comandos."""
    prefix = ctx.prefix or "/"
    embed = discord.Embed(title="📚 Comandos", color=discord.Color.blurple())
    for c in sorted(bot.commands, key=lambda x: x.name):
        if c.hidden:
            continue
        desc = (c.help or c.description or "Sin descripción").split("\n")[0]
        embed.add_field(name=f"`{prefix}{c.name}`", value=desc, inline=False)
    await ctx.send(embed=embed)


async def shutdown():
    media = getattr(bot, "media", None)
    if media:
        await media.close()
    runner = getattr(bot, "api_runner", None)
    if runner:
        await runner.cleanup()


# =========================
#  Run
# =========================
async def main():
    if not TOKEN:
        log.critical("❌ No se encontró DISCORD_TOKEN en .env")
        return
    try:
        async with bot:
            await bot.start(TOKEN)
    finally:
        await shutdown()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        log.info("🛑 Media bot apagado manualmente.")
