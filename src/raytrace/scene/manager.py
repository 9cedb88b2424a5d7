"""Unified scene manager for coordinating spheres and materials.

This module provides the scene construction API. It coordinates sphere
storage with material registration and tracks which material kind
(Lambertian, Metal, Dielectric) each material ID refers to, so the path
tracer can dispatch to the right scattering function.

Materials are shared: any number of spheres may reference one material ID.
Materials and spheres can only be appended; ``clear`` resets everything.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.raytrace.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> glass = scene.add_dielectric_material(ref_idx=1.5)
    >>> scene.add_sphere(center=(-1, 0, -1), radius=0.5, material_id=glass)
    >>> scene.add_sphere(center=(-1, 0, -1), radius=-0.45, material_id=glass)
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

import taichi as ti

from src.raytrace.errors import GeometryError, MaterialConfigError
from src.raytrace.materials.dielectric import (
    add_dielectric_material,
    clear_dielectric_materials,
)
from src.raytrace.materials.lambertian import (
    add_lambertian_material,
    clear_lambertian_materials,
)
from src.raytrace.materials.material import MAX_MATERIALS_PER_TYPE
from src.raytrace.materials.metal import (
    add_metal_material,
    clamp_fuzz,
    clear_metal_materials,
)
from src.raytrace.scene.intersection import (
    MAX_SPHERES,
    add_sphere,
    clear_scene,
    get_sphere_count,
)


class MaterialType(IntEnum):
    """The closed set of material kinds, used as the dispatch tag."""

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2


MAX_MATERIALS = MAX_MATERIALS_PER_TYPE * len(MaterialType)

# material_types[i] stores the MaterialType for material_id i
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material_type_indices[i] stores the type-local index for material_id i
# (e.g., if material_id 5 is the 2nd metal material, material_type_indices[5] = 1)
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def _clear_material_tracking() -> None:
    num_materials[None] = 0


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Get the material type for a given material ID inside a kernel.

    Returns:
        The MaterialType value, or -1 for invalid material IDs.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Get the index into the type-specific registry for a material ID.

    Returns:
        The type-local index, or -1 for invalid material IDs.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: The unified material ID.
        material_type: The kind of material.
        type_index: The index within the type-specific registry.
        params: The material parameters as stored.
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any]


@dataclass
class SphereInfo:
    """Information about a sphere in the scene."""

    sphere_index: int
    center: tuple[float, float, float]
    radius: float
    material_id: int


@dataclass
class SceneConfig:
    """Plain-data description of a scene.

    Attributes:
        materials: Material dicts with a "type" key ("lambertian", "metal"
            or "dielectric") plus that kind's parameters.
        spheres: Sphere dicts with "center", "radius" and "material_id".
    """

    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)


def _as_triple(values: Sequence[float]) -> tuple[float, float, float]:
    return (float(values[0]), float(values[1]), float(values[2]))


class SceneManager:
    """Scene construction API over the Taichi sphere and material fields.

    The field storage is module-global, so there is one active scene per
    process. Creating a SceneManager clears it.

    Attributes:
        materials: MaterialInfo for every registered material, by ID.
        spheres: SphereInfo for every sphere, in insertion order.

    Example:
        >>> scene = SceneManager()
        >>> red = scene.add_lambertian_material(albedo=(0.8, 0.1, 0.1))
        >>> gold = scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=0.3)
        >>> scene.add_sphere((0, 0, -1), 0.5, red)
        >>> scene.add_sphere((1, 0, -1), 0.5, gold)
    """

    def __init__(self) -> None:
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []
        self.clear()

    def clear(self) -> None:
        """Remove every sphere and material, including the Taichi-side registries."""
        clear_scene()
        for clear_registry in (
            clear_lambertian_materials,
            clear_metal_materials,
            clear_dielectric_materials,
            _clear_material_tracking,
        ):
            clear_registry()
        self.materials = []
        self.spheres = []

    def _register(self, material_type: MaterialType, type_index: int, params: dict[str, Any]) -> int:
        material_id = self.get_material_count()
        if material_id >= MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

        material_types[material_id] = int(material_type)
        material_type_indices[material_id] = type_index
        num_materials[None] = material_id + 1

        self.materials.append(MaterialInfo(material_id, material_type, type_index, params))
        return material_id

    def add_lambertian_material(self, albedo: Sequence[float]) -> int:
        """Add a Lambertian (diffuse) material.

        Args:
            albedo: The diffuse reflectance color as (R, G, B), each in [0, 1].

        Returns:
            The unified material ID.

        Raises:
            MaterialConfigError: If any albedo component is outside [0, 1].
            RuntimeError: If the maximum number of materials is exceeded.
        """
        type_index = add_lambertian_material(albedo)
        return self._register(
            MaterialType.LAMBERTIAN, type_index, {"albedo": _as_triple(albedo)}
        )

    def add_metal_material(self, albedo: Sequence[float], fuzz: float = 0.0) -> int:
        """Add a metal material.

        Args:
            albedo: The reflective color as (R, G, B), each in [0, 1].
            fuzz: Reflection perturbation radius, clamped to [0, 1].

        Returns:
            The unified material ID.

        Raises:
            MaterialConfigError: If any albedo component is outside [0, 1].
            RuntimeError: If the maximum number of materials is exceeded.
        """
        type_index = add_metal_material(albedo, fuzz)
        return self._register(
            MaterialType.METAL,
            type_index,
            {"albedo": _as_triple(albedo), "fuzz": clamp_fuzz(fuzz)},
        )

    def add_dielectric_material(self, ref_idx: float = 1.5) -> int:
        """Add a dielectric (glass/water) material.

        Args:
            ref_idx: Refractive index. Default is 1.5 (typical glass).

        Returns:
            The unified material ID.

        Raises:
            MaterialConfigError: If ref_idx is not a finite positive number.
            RuntimeError: If the maximum number of materials is exceeded.
        """
        type_index = add_dielectric_material(ref_idx)
        return self._register(MaterialType.DIELECTRIC, type_index, {"ref_idx": float(ref_idx)})

    def get_material_count(self) -> int:
        return int(num_materials[None])

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Look up a material by ID; None if the ID was never issued."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def get_material_type_python(self, material_id: int) -> MaterialType | None:
        info = self.get_material_info(material_id)
        return None if info is None else info.material_type

    def add_sphere(self, center: Sequence[float], radius: float, material_id: int) -> int:
        """Add a sphere referencing an existing material.

        Args:
            center: Center as (x, y, z).
            radius: Signed radius. A negative radius turns the normals
                inward, which is how a hollow glass shell is built.
            material_id: A material ID returned by one of the add_*_material
                methods.

        Returns:
            The sphere index.

        Raises:
            MaterialConfigError: If material_id does not refer to a material.
            GeometryError: If the radius is zero or not finite.
            RuntimeError: If the scene is full.
        """
        if self.get_material_info(material_id) is None:
            raise MaterialConfigError(f"Invalid material_id: {material_id}")

        sphere_index = add_sphere(center, radius, material_id)
        self.spheres.append(
            SphereInfo(sphere_index, _as_triple(center), float(radius), material_id)
        )
        return sphere_index

    # Shortcuts that create a dedicated material per sphere and return
    # (sphere_index, material_id)

    def add_lambertian_sphere(
        self, center: Sequence[float], radius: float, albedo: Sequence[float]
    ) -> tuple[int, int]:
        material_id = self.add_lambertian_material(albedo)
        return self.add_sphere(center, radius, material_id), material_id

    def add_metal_sphere(
        self,
        center: Sequence[float],
        radius: float,
        albedo: Sequence[float],
        fuzz: float = 0.0,
    ) -> tuple[int, int]:
        material_id = self.add_metal_material(albedo, fuzz)
        return self.add_sphere(center, radius, material_id), material_id

    def add_dielectric_sphere(
        self, center: Sequence[float], radius: float, ref_idx: float = 1.5
    ) -> tuple[int, int]:
        material_id = self.add_dielectric_material(ref_idx)
        return self.add_sphere(center, radius, material_id), material_id

    def get_sphere_count(self) -> int:
        return get_sphere_count()

    def to_config(self) -> SceneConfig:
        """Describe the scene as plain data; tuples become lists."""
        materials = [
            {
                "type": info.material_type.name.lower(),
                **{k: list(v) if isinstance(v, tuple) else v for k, v in info.params.items()},
            }
            for info in self.materials
        ]
        spheres = [
            {"center": list(s.center), "radius": s.radius, "material_id": s.material_id}
            for s in self.spheres
        ]
        return SceneConfig(materials=materials, spheres=spheres)

    def from_config(self, config: SceneConfig) -> None:
        """Replace the current scene with the one described by config.

        Each material dict holds a "type" plus the keyword arguments of the
        matching add_*_material method. Materials are loaded before spheres
        so sphere entries can refer to them by ID.

        Raises:
            MaterialConfigError: On an unknown material type, missing or
                unexpected parameters, or invalid values.
            GeometryError: On a sphere entry missing "center", "radius" or
                "material_id", or on invalid sphere parameters.
        """
        self.clear()

        for entry in config.materials:
            params = dict(entry)
            kind = str(params.pop("type", "")).lower()
            if kind.upper() not in MaterialType.__members__:
                raise MaterialConfigError(f"Unknown material type: {kind!r}")
            add_material = getattr(self, f"add_{kind}_material")
            try:
                add_material(**params)
            except TypeError as e:
                raise MaterialConfigError(f"Bad parameters for {kind} material: {e}") from e

        for entry in config.spheres:
            try:
                center, radius = entry["center"], entry["radius"]
                material_id = entry["material_id"]
            except KeyError as e:
                raise GeometryError(f"Sphere entry is missing {e}") from e
            self.add_sphere(center, radius, material_id)

    def to_dict(self) -> dict[str, Any]:
        """Export the scene as a JSON-compatible dict."""
        config = self.to_config()
        return {"materials": config.materials, "spheres": config.spheres}

    def from_dict(self, data: dict[str, Any]) -> None:
        self.from_config(
            SceneConfig(materials=data.get("materials", []), spheres=data.get("spheres", []))
        )

    @staticmethod
    def get_max_spheres() -> int:
        return MAX_SPHERES

    @staticmethod
    def get_max_materials() -> int:
        return MAX_MATERIALS
