"""Test helpers that mimic the Redis Streams commands NeoWatch uses."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import redis


class StubStreamsClient:
    """In-memory stand-in for the subset of redis.Redis used by the pipeline.

    Supports one consumer group per stream, delivery of new entries with
    ">" and reclaiming of pending entries regardless of idle time (tests
    control timing through ``reclaimable``).
    """

    def __init__(self) -> None:
        self.streams: Dict[str, List[Tuple[str, Dict[str, str]]]] = {}
        self.groups: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self._seq = 0
        self.fail_xadd = False
        self.fail_xadd_times = 0
        self.reclaimable = False
        self.closed = False

    # -- producer ---------------------------------------------------------

    def xadd(
        self,
        name: str,
        fields: Dict[str, Any],
        maxlen: Optional[int] = None,
        approximate: bool = True,
    ) -> str:
        if self.fail_xadd or self.fail_xadd_times > 0:
            self.fail_xadd_times = max(0, self.fail_xadd_times - 1)
            raise redis.exceptions.ConnectionError("broker unavailable")
        self._seq += 1
        message_id = f"{self._seq}-0"
        self.streams.setdefault(name, []).append(
            (message_id, {k: str(v) for k, v in fields.items()})
        )
        if maxlen is not None:
            self.streams[name] = self.streams[name][-maxlen:]
        return message_id

    # -- consumer group ---------------------------------------------------

    def xgroup_create(
        self, name: str, groupname: str, id: str = "$", mkstream: bool = False
    ) -> bool:
        if (name, groupname) in self.groups:
            raise redis.exceptions.ResponseError(
                "BUSYGROUP Consumer Group name already exists"
            )
        if name not in self.streams:
            if not mkstream:
                raise redis.exceptions.ResponseError("ERR no such key")
            self.streams[name] = []
        last = "0-0" if id == "0" else (self.streams[name][-1][0] if self.streams[name] else "0-0")
        self.groups[(name, groupname)] = {"last": last, "pending": {}}
        return True

    def xreadgroup(
        self,
        groupname: str,
        consumername: str,
        streams: Dict[str, str],
        count: Optional[int] = None,
        block: Optional[int] = None,
    ) -> List[Any]:
        response = []
        for name in streams:
            group = self.groups[(name, groupname)]
            entries = [
                entry
                for entry in self.streams.get(name, [])
                if _id_key(entry[0]) > _id_key(group["last"])
            ]
            if count is not None:
                entries = entries[:count]
            if not entries:
                continue
            for message_id, _ in entries:
                group["pending"][message_id] = consumername
            group["last"] = entries[-1][0]
            response.append([name, [(mid, dict(fields)) for mid, fields in entries]])
        return response

    def xack(self, name: str, groupname: str, *ids: str) -> int:
        pending = self.groups[(name, groupname)]["pending"]
        removed = 0
        for message_id in ids:
            if pending.pop(message_id, None) is not None:
                removed += 1
        return removed

    def xautoclaim(
        self,
        name: str,
        groupname: str,
        consumername: str,
        min_idle_time: int,
        start_id: str = "0-0",
        count: Optional[int] = None,
    ) -> List[Any]:
        if not self.reclaimable:
            return ["0-0", [], []]
        pending = self.groups[(name, groupname)]["pending"]
        by_id = dict(self.streams.get(name, []))
        claimed = []
        for message_id in sorted(pending, key=_id_key):
            pending[message_id] = consumername
            fields = by_id.get(message_id)
            claimed.append((message_id, dict(fields) if fields is not None else None))
        if count is not None:
            claimed = claimed[:count]
        return ["0-0", claimed, []]

    # -- helpers ----------------------------------------------------------

    def pending_ids(self, name: str, groupname: str) -> List[str]:
        return sorted(self.groups[(name, groupname)]["pending"], key=_id_key)

    def close(self) -> None:
        self.closed = True


def _id_key(message_id: str) -> Tuple[int, int]:
    ms, _, seq = message_id.partition("-")
    return int(ms), int(seq or 0)
