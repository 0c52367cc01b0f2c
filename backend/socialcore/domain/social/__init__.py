"""Relationship graph: friendships, follows and page follows."""
