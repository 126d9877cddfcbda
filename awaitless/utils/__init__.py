"""Source, file and hashing helpers"""
