"""Fixed style directive sent with every upstream transformation request."""

from __future__ import annotations

STYLE_DIRECTIVE = """\
Transform this image into a cartoon illustration in the style of a flat, \
construction-paper TV animation. Create original cartoon characters inspired \
by the composition and general scene of the reference photo.

Art style:
- Large round heads, roughly 40-50% of character height
- Big circular white eyes with small black pupils
- Simple mitten hands without individual fingers
- Small blocky bodies with simplified limbs
- Solid flat colors with bold black outlines
- No shading, gradients or realistic textures

Characters:
- New cartoon characters based on the people and poses in the scene
- The show's typical color palette and proportions
- Keep the general composition and arrangement of the reference
- Simple, signature clothing and accessories

Background:
- A flat color or a simple small-mountain-town setting
- Snowy streets or plain interiors drawn in the same flat style

Output:
- Clean, sharp illustration at broadcast animation quality
- Keep the style's characteristic simplicity and bold look"""
