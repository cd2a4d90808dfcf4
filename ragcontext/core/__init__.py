"""
Pipeline core - configuration, similarity, gating, history selection and assembly.
"""
