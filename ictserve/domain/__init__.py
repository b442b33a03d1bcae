"""Domain layer - models, enums, errors and defaults"""
