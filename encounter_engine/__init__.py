"""Combat encounter engine: initiative, batched actions, up checks and chases for live fights."""
