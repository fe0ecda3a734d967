from .base import FlowModel, StepContext
from .properties import Skeleton, Fluid, CoreyRelPerm
from .oil import OilModel
from .water_oil import WaterOilModel
