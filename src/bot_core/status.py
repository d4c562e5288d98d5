# BotStatus snapshot built from the live adapter
# src/bot_core/status.py
"""
Status snapshot assembly.

This module is the only place that turns adapter state into a BotStatus.
The snapshot is rebuilt from scratch each time:

- position: floored block coordinates of the bot entity
- health / food: 0 when the adapter has not reported them yet
- dimension: adapter dimension, "Overworld" by default
- inventory: non-empty slots in slot order
- nearbyEntities: mobs and players only, nearest first, at most 10
"""

from __future__ import annotations

import math
from typing import List

from shared.game_client import GameClient, other_entities
from shared.types import BotStatus, InventoryItem, NearbyEntity

MAX_NEARBY_ENTITIES = 10
TRACKED_ENTITY_KINDS = ("mob", "player")
DEFAULT_DIMENSION = "Overworld"


def collect_inventory(client: GameClient) -> List[InventoryItem]:
    items: List[InventoryItem] = []
    for stack in client.inventory_slots or []:
        if stack is None:
            continue
        items.append(InventoryItem(name=stack.name, count=stack.count, slot=stack.slot))
    return items


def collect_nearby_entities(
    client: GameClient, limit: int = MAX_NEARBY_ENTITIES
) -> List[NearbyEntity]:
    """Mobs and players around the bot, sorted by floored distance."""
    me = client.entity
    if me is None:
        return []

    nearby: List[NearbyEntity] = []
    for ent in other_entities(client):
        if ent.kind not in TRACKED_ENTITY_KINDS:
            continue
        nearby.append(
            NearbyEntity(
                name=ent.display,
                distance=math.floor(me.position.distance_to(ent.position)),
                type=ent.kind,
            )
        )

    # sort is stable, so equal distances keep adapter order
    nearby.sort(key=lambda e: e.distance)
    return nearby[:limit]


def build_status(client: GameClient, connected: bool) -> BotStatus:
    """Recompute the full BotStatus from the adapter."""
    me = client.entity
    position = me.position.floored() if me is not None else {"x": 0, "y": 0, "z": 0}

    return BotStatus(
        connected=connected,
        position=position,
        health=client.health or 0,
        food=client.food or 0,
        dimension=client.dimension or DEFAULT_DIMENSION,
        inventory=collect_inventory(client),
        nearby_entities=collect_nearby_entities(client),
    )
