"""
Services built on the evaluation core: payload cache, change notifications
and the configuration write path.
"""
