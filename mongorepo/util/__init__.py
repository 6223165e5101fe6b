from .reusable import Reusable
