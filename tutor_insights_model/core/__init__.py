"""
Pipeline components: aggregation, scoring, trend and the AI models
"""
