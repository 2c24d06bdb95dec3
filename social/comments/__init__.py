"""Comments: soft-deletable replies to posts and to other comments."""
