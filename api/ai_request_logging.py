"""Best-effort logging of vision model requests."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from menu_lens.schema import RoundRecord

logger = logging.getLogger(__name__)


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class AiRequestLoggingConfig:
    enabled: bool = False
    database_url: str | None = None
    table: str = "ai_requests"
    request_type: str = "menu_assessment"

    @classmethod
    def from_env(cls) -> "AiRequestLoggingConfig":
        return cls(
            enabled=_parse_bool(os.getenv("SAVE_AI_REQUEST_LOG"), False),
            database_url=os.getenv("AI_REQUEST_LOG_DATABASE_URL") or os.getenv("DATABASE_URL"),
            table=os.getenv("AI_REQUEST_LOG_TABLE", "ai_requests"),
        )


class AiRequestLogger:
    def __init__(self, config: AiRequestLoggingConfig):
        self.config = config
        self._db_ready = False

    def should_log(self) -> bool:
        return self.config.enabled and bool(self.config.database_url)

    def new_request_id(self) -> str:
        return str(uuid.uuid4())

    @staticmethod
    def input_hash(prompt: str, batch_index: int | None) -> str:
        marker = "na" if batch_index is None else str(batch_index)
        return hashlib.sha256(f"{prompt}::{marker}".encode("utf-8")).hexdigest()

    def build_row(self, *, request_id: str, record: RoundRecord) -> dict:
        response_payload: dict = {}
        if record.usage is not None:
            response_payload["usage"] = record.usage.model_dump()
        if record.error:
            response_payload["error"] = record.error
        return {
            "request_id": request_id,
            "created_at": _utc_now_iso(),
            "request_type": self.config.request_type,
            "model": record.model,
            "variant": record.variant,
            "input_hash": self.input_hash(record.prompt, record.batch_index),
            "input_json": {"prompt": record.prompt, "batchIndex": record.batch_index},
            "response_json": response_payload or None,
            "status": "error" if record.status == "error" else "success",
            "tokens_in": record.usage.prompt_tokens if record.usage else None,
            "tokens_out": record.usage.completion_tokens if record.usage else None,
        }

    def log_rounds(self, *, request_id: str, rounds: list[RoundRecord]) -> None:
        if not self.should_log() or not rounds:
            return
        self._insert_rows([self.build_row(request_id=request_id, record=record) for record in rounds])

    def _insert_rows(self, rows: list[dict]) -> None:
        try:
            import psycopg
        except ImportError:
            return

        table = self.config.table
        create_sql = f"""
            create table if not exists {table} (
              id bigserial primary key,
              request_id text not null,
              created_at timestamptz not null default now(),
              request_type text not null,
              model text null,
              variant text null,
              input_hash text not null,
              input jsonb null,
              response jsonb null,
              status text not null,
              tokens_in integer null,
              tokens_out integer null
            )
        """
        insert_sql = f"""
            insert into {table} (
              request_id, created_at, request_type, model, variant, input_hash,
              input, response, status, tokens_in, tokens_out
            ) values (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        """
        try:
            with psycopg.connect(self.config.database_url) as conn:
                with conn.cursor() as cur:
                    if not self._db_ready:
                        cur.execute(create_sql)
                        self._db_ready = True
                    for row in rows:
                        cur.execute(
                            insert_sql,
                            (
                                row["request_id"],
                                row["created_at"],
                                row["request_type"],
                                row["model"],
                                row["variant"],
                                row["input_hash"],
                                json.dumps(row["input_json"], ensure_ascii=False),
                                json.dumps(row["response_json"], ensure_ascii=False)
                                if row["response_json"] is not None
                                else None,
                                row["status"],
                                row["tokens_in"],
                                row["tokens_out"],
                            ),
                        )
                conn.commit()
        except psycopg.Error:
            # Logging should never break extraction API.
            logger.warning("failed to log ai requests", exc_info=True)
