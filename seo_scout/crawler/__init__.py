"""
seo_scout.crawler: URL policy, link extraction, bounded concurrency and BFS discovery.
"""
