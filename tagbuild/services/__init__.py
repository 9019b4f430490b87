"""Collaborators of a release run: git, docker, publishers, job spawner."""
