"""Workflow domain modules: purchase requests, production planner, warehouse locks."""
