"""Organization dashboard service: posts, polls, events and feedback forms."""
