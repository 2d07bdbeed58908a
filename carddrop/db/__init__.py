from carddrop.db.database import get_session, init_db
from carddrop.db.operations import (
    as_utc,
    create_user,
    delete_inventory_row_by_card,
    delete_inventory_row_by_instance,
    delete_inventory_rows,
    get_inventory_rows,
    get_server_configs,
    get_user,
    insert_inventory_row,
    instance_id_exists,
    row_to_instance,
    upsert_server_config,
    upsert_user_cooldowns,
    user_to_session,
)

__all__ = [
    "as_utc",
    "create_user",
    "delete_inventory_row_by_card",
    "delete_inventory_row_by_instance",
    "delete_inventory_rows",
    "get_inventory_rows",
    "get_server_configs",
    "get_session",
    "get_user",
    "init_db",
    "insert_inventory_row",
    "instance_id_exists",
    "row_to_instance",
    "upsert_server_config",
    "upsert_user_cooldowns",
    "user_to_session",
]
