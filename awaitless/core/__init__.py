"""Core data models, configuration and the analysis pipeline"""
