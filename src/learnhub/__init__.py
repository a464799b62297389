"""LearnHub gamification service."""
