# mediabot/ledger.py
from __future__ import annotations

import asyncio
import logging
from datetime import datetime

import aiosqlite

log = logging.getLogger("mediabot.ledger")


class InsufficientTokens(Exception):
    def __init__(self, balance: int, needed: int):
        super().__init__(f"Tokens insuficientes. Tiene {balance}, necesita {needed}")
        self.balance = balance
        self.needed = needed


class TokenLedger:
    """
    Saldo de tokens por usuario (lo que paga cada pedido de música/video).
    El orquestador no sabe nada de esto: el frontend cobra, y devuelve si falla.
    """

    def __init__(self, db_path: str = "tokens.db"):
        self.db_path = db_path
        self._lock = asyncio.Lock()

    @staticmethod
    def _norm(username: str) -> str:
        return (username or "").strip().lower()

    async def init(self):
        """Crea las tablas si no existen."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    username TEXT PRIMARY KEY,
                    tokens INTEGER NOT NULL DEFAULT 0
                )
            """)
            await db.execute("""
                CREATE TABLE IF NOT EXISTS transactions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT NOT NULL,
                    amount INTEGER NOT NULL,
                    reason TEXT,
                    created_at TEXT
                )
            """)
            await db.commit()

    async def balance(self, username: str) -> int:
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute("SELECT tokens FROM users WHERE username = ?", (self._norm(username),))
            row = await cursor.fetchone()
            return row[0] if row else 0

    async def has_tokens(self, username: str, amount: int) -> bool:
        return await self.balance(username) >= amount

    async def _apply(self, db, username: str, delta: int, reason: str) -> int:
        name = self._norm(username)
        cursor = await db.execute("SELECT tokens FROM users WHERE username = ?", (name,))
        row = await cursor.fetchone()
        current = row[0] if row else 0
        new_balance = current + delta
        if new_balance < 0:
            raise InsufficientTokens(current, -delta)

        await db.execute(
            "INSERT OR REPLACE INTO users (username, tokens) VALUES (?, ?)",
            (name, new_balance),
        )
        await db.execute(
            "INSERT INTO transactions (username, amount, reason, created_at) VALUES (?, ?, ?, ?)",
            (name, delta, reason, datetime.now().isoformat(timespec="seconds")),
        )
        await db.commit()
        return new_balance

    async def add(self, username: str, amount: int, reason: str = "Compra") -> int:
        async with self._lock:
            async with aiosqlite.connect(self.db_path) as db:
                new_balance = await self._apply(db, username, amount, reason)
        log.info("+%d tokens a %s (%s). Saldo: %d", amount, username, reason, new_balance)
        return new_balance

    async def spend(self, username: str, amount: int, reason: str = "Comando") -> int:
        async with self._lock:
            async with aiosqlite.connect(self.db_path) as db:
                new_balance = await self._apply(db, username, -amount, reason)
        log.info("%s gastó %d tokens (%s). Saldo: %d", username, amount, reason, new_balance)
        return new_balance
