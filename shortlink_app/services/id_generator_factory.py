"""
Factory for the configured candidate id generator.
"""

from shortlink_app.services.id_generators import IdGenerator, NanoidGenerator


class IdGeneratorFactory:
    """Builds the id generator described by settings"""

    @classmethod
    def create(cls, settings) -> IdGenerator:
        """
        Create a generator from settings.

        Raises:
            ValueError: If the alphabet or length is unusable, or the
                alphabet contains characters that are not URL path safe
        """
        alphabet = settings.id_alphabet
        unsafe = [c for c in alphabet if not (c.isascii() and (c.isalnum() or c in "-_"))]
        if unsafe:
            raise ValueError(f"Id alphabet contains characters unsafe in a URL path: {unsafe!r}")

        return NanoidGenerator(alphabet=alphabet, default_length=settings.id_length)
