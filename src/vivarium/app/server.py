from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..sim.core.config import AppConfig
from ..sim.core.world import World
from .headless import build_config
from .tilemap import DEFAULT_TILE_SIZE, TileMapError

logger = logging.getLogger(__name__)

MIN_SPEED = 0.1
MAX_SPEED = 5.0


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SnapshotStream:
    """Serialized snapshots kept until acknowledged, fanned out to websocket clients.

    Each client has a cursor holding the last tick it was sent, so a client
    that attaches late replays every snapshot still waiting for an ack.
    """

    def __init__(self) -> None:
        self._backlog: deque[QueuedSnapshot] = deque()
        self._cursors: Dict[WebSocket, int] = {}
        self._lock = asyncio.Lock()

    @property
    def clients(self) -> List[WebSocket]:
        return list(self._cursors)

    async def backlog_ticks(self) -> List[int]:
        async with self._lock:
            return [entry.tick for entry in self._backlog]

    async def attach(self, client: WebSocket) -> None:
        self._cursors[client] = -1
        await self._flush(client)

    def detach(self, client: WebSocket) -> None:
        self._cursors.pop(client, None)

    async def publish(self, tick: int, payload: Dict[str, Any]) -> None:
        entry = QueuedSnapshot(tick=tick, payload=json.dumps({"type": "snapshot", "tick": tick, "payload": payload}))
        async with self._lock:
            self._backlog.append(entry)
        for client in self.clients:
            try:
                await self._flush(client)
            except WebSocketDisconnect:
                logger.debug("client left during publish of tick %d", tick)
                self.detach(client)

    async def acknowledge(self, tick: int) -> int:
        """Drop every queued snapshot up to ``tick``; returns how many were dropped."""
        dropped = 0
        async with self._lock:
            while self._backlog and self._backlog[0].tick <= tick:
                self._backlog.popleft()
                dropped += 1
        return dropped

    async def restart(self) -> None:
        async with self._lock:
            self._backlog.clear()
        for client in self._cursors:
            self._cursors[client] = -1

    async def _flush(self, client: WebSocket) -> None:
        cursor = self._cursors.get(client, -1)
        async with self._lock:
            unsent = [entry for entry in self._backlog if entry.tick > cursor]
        for entry in unsent:
            await client.send_text(entry.payload)
            self._cursors[client] = entry.tick


class SimulationController:
    """Runs one world on a timer and publishes its snapshots."""

    def __init__(self, app_config: AppConfig):
        self.app_config = app_config
        self.world = World(app_config.simulation)
        self.stream = SnapshotStream()
        self.tick = 0
        self.running = False
        self.speed = 1.0
        self._world_lock = asyncio.Lock()
        self._timer: Optional[asyncio.Task] = None

    async def start(self) -> None:
        if self._timer is None:
            self._timer = asyncio.create_task(self._run())
        self.running = True
        logger.info("Simulation running from tick %d", self.tick)

    async def stop(self) -> None:
        self.running = False
        logger.info("Simulation paused at tick %d", self.tick)

    def set_speed(self, multiplier: float) -> float:
        self.speed = max(MIN_SPEED, min(MAX_SPEED, multiplier))
        return self.speed

    async def step_once(self) -> None:
        async with self._world_lock:
            self.world.step(self.tick)
            self.tick += 1
        if self.tick % max(1, self.app_config.broadcast_interval) == 0:
            await self.stream.publish(self.tick, self.snapshot_payload())

    async def rebuild(
        self,
        seed: Optional[int] = None,
        map_path: Optional[Path] = None,
        tile_size: int = DEFAULT_TILE_SIZE,
    ) -> None:
        """Start a fresh world; a tile map resizes the play area."""
        config = build_config(seed, None, map_path, tile_size, base=self.app_config.simulation)
        async with self._world_lock:
            self.world = World(config)
            self.tick = 0
        await self.stream.restart()
        logger.info(
            "World rebuilt (seed=%d, area=%.0fx%.0f)", config.seed, config.world_width, config.world_height
        )
        await self.stream.publish(self.tick, self.snapshot_payload())

    def snapshot_payload(self) -> Dict[str, Any]:
        return asdict(self.world.snapshot(self.tick))

    def inspect(self, agent_id: int) -> Optional[Dict[str, Any]]:
        for agent in self.world.agents:
            if agent.id != agent_id:
                continue
            return {
                "id": agent.id,
                "generation": agent.generation,
                "state": agent.state.value,
                "alive": agent.alive,
                "age": agent.age,
                "maturity": agent.maturity,
                "needs": {
                    "hunger": agent.hunger,
                    "horniness": agent.horniness,
                    "energy": agent.energy,
                    "health": agent.health,
                },
                "reproduction_cooldown": agent.reproduction_cooldown,
                "genome": asdict(agent.genome),
                "derived": asdict(agent.derived),
            }
        return None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.world.config.time_step / self.speed)
            if self.running:
                await self.step_once()


app = FastAPI(title="Vivarium Simulation")
controller = SimulationController(AppConfig())


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/api/status")
async def status() -> JSONResponse:
    metrics = controller.world.metrics
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.tick,
            "speed": controller.speed,
            "population": len(controller.world.agents),
            "alive": len(controller.world.live_agents()),
            "metrics": asdict(metrics) if metrics is not None else None,
        }
    )


@app.get("/api/snapshot")
async def current_snapshot() -> JSONResponse:
    return JSONResponse(controller.snapshot_payload())


@app.get("/api/agents/{agent_id}")
async def agent_detail(agent_id: int) -> JSONResponse:
    detail = controller.inspect(agent_id)
    if detail is None:
        raise HTTPException(status_code=404, detail=f"no agent {agent_id}")
    return JSONResponse(detail)


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    await controller.start()
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    await controller.stop()
    return JSONResponse({"running": False})


@app.post("/api/control/reset")
async def reset_simulation(payload: Optional[dict] = None) -> JSONResponse:
    options = payload or {}
    map_path = options.get("map")
    seed = options.get("seed")
    try:
        await controller.rebuild(
            seed=int(seed) if seed is not None else None,
            map_path=Path(map_path) if map_path else None,
            tile_size=int(options.get("tile_size", DEFAULT_TILE_SIZE)),
        )
    except (OSError, TileMapError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    config = controller.world.config
    return JSONResponse(
        {"tick": controller.tick, "seed": config.seed, "width": config.world_width, "height": config.world_height}
    )


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    return JSONResponse({"multiplier": controller.set_speed(float(payload.get("multiplier", 1.0)))})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    try:
        await controller.stream.attach(websocket)
        while True:
            try:
                message = json.loads(await websocket.receive_text())
            except json.JSONDecodeError:
                continue
            if isinstance(message, dict) and message.get("type") == "ack" and isinstance(message.get("tick"), int):
                await controller.stream.acknowledge(message["tick"])
    except WebSocketDisconnect:
        controller.stream.detach(websocket)


__all__ = ["app", "controller"]
