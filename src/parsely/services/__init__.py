from .vision import RecipeVisionService, parse_recipe_response

__all__ = ["RecipeVisionService", "parse_recipe_response"]
