"""Core building blocks: resolution, environment, workspaces, runner, pipeline."""
