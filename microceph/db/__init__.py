"""SQLite cluster database: schema, configuration items, disks and services."""