"""Usage and help texts for every command."""

from typing import Optional

USAGE = {
    "set": "Usage: set [key] [value]",
    "get": "Usage: get [key]",
    "del": "Usage: del [key]",
    "lpush": "Usage: lpush [key] [value]",
    "rpush": "Usage: rpush [key] [value]",
    "range": "Usage: range [key] [start] [end]",
    "len": "Usage: len [key]",
    "lpop": "Usage: lpop [key]",
    "rpop": "Usage: rpop [key]",
    "ldel": "Usage: ldel [key]",
    "ping": "Usage: ping",
    "help": "Usage: help or help [command]",
    "hset": "Usage: hset [key] [field] [value]",
    "hget": "Usage: hget [key] [field]",
    "hdel": "Usage: hdel [key] [field] or hdel [key]",
}

DESCRIPTIONS = {
    "set": "Store a key - value pair",
    "get": "Retrieve the value associated with a key",
    "del": "Delete a key - value pair",
    "lpush": "Push a value to the left of a list",
    "rpush": "Push a value to the right of a list",
    "range": "Get a range of values from a list",
    "len": "Get the length of a list",
    "lpop": "Pop a value from the left of a list",
    "rpop": "Pop a value from the right of a list",
    "ldel": "Delete a list",
    "ping": "Send a heartbeat request",
    "help": "Get help information",
    "hset": "Store a field - value pair in a hash",
    "hget": "Retrieve the value of a field in a hash",
    "hdel": "Delete a field - value pair or a whole hash",
}

HELP_ALL = "\n".join([
    "Available commands:",
    "set [key] [value]",
    "get [key]",
    "del [key]",
    "lpush [key] [value]",
    "rpush [key] [value]",
    "range [key] [start] [end]",
    "len [key]",
    "lpop [key]",
    "rpop [key]",
    "ldel [key]",
    "ping",
    "help",
    "help [command]",
    "hset [key] [field] [value]",
    "hget [key] [field]",
    "hdel [key] [field] or hdel [key]",
])


def help_text(topic: Optional[str] = None) -> str:
    """Return the full command list, or the usage line of one command."""
    if topic is None:
        return HELP_ALL
    if topic not in USAGE:
        return f"Unknown command: {topic}"
    return f"{USAGE[topic]} - {DESCRIPTIONS[topic]}"
